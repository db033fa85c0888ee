# systemmax/modules/organizacao/schemas.py
from pydantic import BaseModel


class UsuarioResumo(BaseModel):
    matricula: int
    nome: str
    email: str | None = None
    contrato_raiz: str | None = None
    status: str | None = None

    class Config:
        from_attributes = True


class EquipeOut(BaseModel):
    id: int
    equipe: str
    supervisor: int | None = None

    class Config:
        from_attributes = True


class LetraOut(BaseModel):
    id: int
    letra: str
    lider: int | None = None

    class Config:
        from_attributes = True


class DefinirResponsavel(BaseModel):
    # None remove o responsável atual
    matricula: int | None = None


class EquipesResponse(BaseModel):
    success: bool = True
    data: list[EquipeOut]


class LetrasResponse(BaseModel):
    success: bool = True
    data: list[LetraOut]


class EquipeResponse(BaseModel):
    success: bool = True
    data: EquipeOut


class LetraResponse(BaseModel):
    success: bool = True
    data: LetraOut
