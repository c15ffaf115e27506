from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from db import get_db
from models.models import (Empresa, Funcionario, Dependente, Socio, Rubrica, FolhaPagamento,
                           Ferias, Rescisao, DecimoTerceiro)
from schemas.schemas import (FuncionarioCreate, FuncionarioUpdate, FuncionarioOut, SocioCreate,
                             SocioUpdate, SocioOut, RubricaCreate, RubricaUpdate, RubricaOut)
from routers.empresas import get_empresa, get_owned, download
from services import pdf_service

router = APIRouter(prefix="/empresas/{empresa_id}", tags=["pessoal"])


# ── Funcionários ─────────────────────────────────────────────────────────────

@router.get("/funcionarios", response_model=List[FuncionarioOut])
async def list_funcionarios(ativo: Optional[bool] = None,
                            empresa: Empresa = Depends(get_empresa),
                            db: Session = Depends(get_db)):
    q = db.query(Funcionario).filter(Funcionario.empresa_id == empresa.id)
    if ativo is not None:
        q = q.filter(Funcionario.ativo == ativo)
    return q.order_by(Funcionario.nome_completo).all()


@router.get("/relatorios/funcionarios/pdf")
async def funcionarios_pdf(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    funcionarios = db.query(Funcionario).filter(Funcionario.empresa_id == empresa.id).all()
    try:
        pdf = pdf_service.funcionarios_pdf(empresa, funcionarios)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return download(pdf, "funcionarios_ativos.pdf")


@router.post("/funcionarios", response_model=FuncionarioOut, status_code=201)
async def create_funcionario(data: FuncionarioCreate, empresa: Empresa = Depends(get_empresa),
                             db: Session = Depends(get_db)):
    if db.query(Funcionario).filter(Funcionario.empresa_id == empresa.id,
                                    Funcionario.cpf == data.cpf).first():
        raise HTTPException(status_code=400, detail="Funcionário já cadastrado com este CPF")
    fields = data.model_dump(exclude={"dependentes"})
    funcionario = Funcionario(empresa_id=empresa.id, **fields)
    funcionario.dependentes = [Dependente(**d.model_dump()) for d in data.dependentes]
    db.add(funcionario)
    db.commit()
    db.refresh(funcionario)
    return funcionario


@router.get("/funcionarios/{funcionario_id}", response_model=FuncionarioOut)
async def get_funcionario(funcionario_id: int, empresa: Empresa = Depends(get_empresa),
                          db: Session = Depends(get_db)):
    return get_owned(db, Funcionario, funcionario_id, empresa, "Funcionário não encontrado")


@router.put("/funcionarios/{funcionario_id}", response_model=FuncionarioOut)
async def update_funcionario(funcionario_id: int, data: FuncionarioUpdate,
                             empresa: Empresa = Depends(get_empresa),
                             db: Session = Depends(get_db)):
    funcionario = get_owned(db, Funcionario, funcionario_id, empresa, "Funcionário não encontrado")
    changes = data.model_dump(exclude_unset=True, exclude={"dependentes"})
    for k, v in changes.items():
        setattr(funcionario, k, v)
    if data.dependentes is not None:
        funcionario.dependentes = [Dependente(**d.model_dump()) for d in data.dependentes]
    db.commit()
    db.refresh(funcionario)
    return funcionario


@router.delete("/funcionarios/{funcionario_id}")
async def delete_funcionario(funcionario_id: int, empresa: Empresa = Depends(get_empresa),
                             db: Session = Depends(get_db)):
    funcionario = get_owned(db, Funcionario, funcionario_id, empresa, "Funcionário não encontrado")
    for model in (FolhaPagamento, Ferias, Rescisao, DecimoTerceiro):
        if db.query(model).filter(model.funcionario_id == funcionario.id).first():
            raise HTTPException(status_code=409,
                                detail="Funcionário possui cálculos salvos. Inative-o em vez de excluir.")
    db.delete(funcionario)
    db.commit()
    return {"ok": True}


# ── Sócios ───────────────────────────────────────────────────────────────────

@router.get("/socios", response_model=List[SocioOut])
async def list_socios(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    return (db.query(Socio).filter(Socio.empresa_id == empresa.id)
            .order_by(Socio.nome_completo).all())


@router.post("/socios", response_model=SocioOut, status_code=201)
async def create_socio(data: SocioCreate, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    socio = Socio(empresa_id=empresa.id, **data.model_dump())
    db.add(socio)
    db.commit()
    db.refresh(socio)
    return socio


@router.get("/socios/{socio_id}", response_model=SocioOut)
async def get_socio(socio_id: int, empresa: Empresa = Depends(get_empresa),
                    db: Session = Depends(get_db)):
    return get_owned(db, Socio, socio_id, empresa, "Sócio não encontrado")


@router.put("/socios/{socio_id}", response_model=SocioOut)
async def update_socio(socio_id: int, data: SocioUpdate, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    socio = get_owned(db, Socio, socio_id, empresa, "Sócio não encontrado")
    for k, v in data.model_dump(exclude_unset=True).items():
        setattr(socio, k, v)
    db.commit()
    db.refresh(socio)
    return socio


@router.delete("/socios/{socio_id}")
async def delete_socio(socio_id: int, empresa: Empresa = Depends(get_empresa),
                       db: Session = Depends(get_db)):
    socio = get_owned(db, Socio, socio_id, empresa, "Sócio não encontrado")
    db.delete(socio)
    db.commit()
    return {"ok": True}


# ── Rubricas ─────────────────────────────────────────────────────────────────

@router.get("/rubricas", response_model=List[RubricaOut])
async def list_rubricas(empresa: Empresa = Depends(get_empresa), db: Session = Depends(get_db)):
    return (db.query(Rubrica).filter(Rubrica.empresa_id == empresa.id)
            .order_by(Rubrica.codigo).all())


@router.post("/rubricas", response_model=RubricaOut, status_code=201)
async def create_rubrica(data: RubricaCreate, empresa: Empresa = Depends(get_empresa),
                         db: Session = Depends(get_db)):
    if db.query(Rubrica).filter(Rubrica.empresa_id == empresa.id,
                                Rubrica.codigo == data.codigo).first():
        raise HTTPException(status_code=400, detail="Já existe uma rubrica com este código")
    rubrica = Rubrica(empresa_id=empresa.id, **data.model_dump())
    db.add(rubrica)
    db.commit()
    db.refresh(rubrica)
    return rubrica


@router.put("/rubricas/{rubrica_id}", response_model=RubricaOut)
async def update_rubrica(rubrica_id: int, data: RubricaUpdate,
                         empresa: Empresa = Depends(get_empresa),
                         db: Session = Depends(get_db)):
    rubrica = get_owned(db, Rubrica, rubrica_id, empresa, "Rubrica não encontrada")
    for k, v in data.model_dump(exclude_unset=True).items():
        setattr(rubrica, k, v)
    db.commit()
    db.refresh(rubrica)
    return rubrica


@router.delete("/rubricas/{rubrica_id}")
async def delete_rubrica(rubrica_id: int, empresa: Empresa = Depends(get_empresa),
                         db: Session = Depends(get_db)):
    rubrica = get_owned(db, Rubrica, rubrica_id, empresa, "Rubrica não encontrada")
    db.delete(rubrica)
    db.commit()
    return {"ok": True}
