"""
Company data backup: every company-owned table dumped to one JSON file under
BACKUP_DIR/backups/<user>/<empresa>/.
"""

import enum
import json
import logging
import os
from datetime import date, datetime
from typing import Dict, List

from sqlalchemy.orm import Session

from config import BACKUP_DIR
from models.models import (
    Empresa, Estabelecimento, Parceiro, Funcionario, Dependente, Socio, Rubrica,
    Lancamento, ItemLancamento, FolhaPagamento, Rci, Ferias, Rescisao, DecimoTerceiro,
    Pgdas, EventoEsocial, ArquivoReinf, ArquivoEfd, ContaContabil, Orcamento,
    ItemOrcamento, Recibo, Aliquota,
)

logger = logging.getLogger(__name__)

# Tables carrying empresa_id, parents before children; deletion walks the list
# in reverse.
COMPANY_TABLES = [
    Estabelecimento, Parceiro, Funcionario, Socio, Rubrica, Lancamento, FolhaPagamento,
    Rci, Ferias, Rescisao, DecimoTerceiro, Pgdas, EventoEsocial, ArquivoReinf, ArquivoEfd,
    ContaContabil, Orcamento, Recibo, Aliquota,
]

# Child tables reached through a parent owned by the company
CHILD_TABLES = [
    (Dependente, Dependente.funcionario_id, Funcionario),
    (ItemLancamento, ItemLancamento.lancamento_id, Lancamento),
    (ItemOrcamento, ItemOrcamento.orcamento_id, Orcamento),
]


def _jsonable(value):
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def row_to_dict(row) -> Dict:
    return {c.name: _jsonable(getattr(row, c.name)) for c in row.__table__.columns}


def collect_company_data(db: Session, empresa: Empresa) -> Dict[str, List[Dict]]:
    data: Dict[str, List[Dict]] = {'empresas': [row_to_dict(empresa)]}
    for model in COMPANY_TABLES:
        rows = db.query(model).filter(model.empresa_id == empresa.id).all()
        if rows:
            data[model.__tablename__] = [row_to_dict(r) for r in rows]
        logger.info(f"Backup: {len(rows)} registro(s) de {model.__tablename__}")
    for model, fk, parent in CHILD_TABLES:
        rows = (db.query(model).join(parent, fk == parent.id)
                .filter(parent.empresa_id == empresa.id).all())
        if rows:
            data[model.__tablename__] = [row_to_dict(r) for r in rows]
    return data


def backup_dir(user_id: int, empresa_id: int) -> str:
    return os.path.join(BACKUP_DIR, "backups", str(user_id), str(empresa_id))


def create_backup(db: Session, empresa: Empresa, now: datetime = None) -> Dict:
    """Write the backup file and return {'nome_arquivo', 'caminho', 'tabelas'}."""
    now = now or datetime.now()
    data = collect_company_data(db, empresa)
    folder = backup_dir(empresa.owner_id, empresa.id)
    os.makedirs(folder, exist_ok=True)
    nome = f"backup_{empresa.id}_{now:%Y-%m-%d_%H-%M-%S}.json"
    caminho = os.path.join(folder, nome)
    with open(caminho, "w", encoding="utf-8") as fp:
        json.dump({'empresa_id': empresa.id, 'gerado_em': now.isoformat(), 'dados': data},
                  fp, ensure_ascii=False, indent=2)
    logger.info(f"Backup da empresa {empresa.id} salvo em {caminho}")
    return {'nome_arquivo': nome, 'caminho': caminho,
            'tabelas': {k: len(v) for k, v in data.items()}}


def backup_path(empresa: Empresa, nome: str) -> str:
    """Path of an existing backup file. Raises LookupError when it does not exist."""
    if os.path.basename(nome) != nome or not nome.endswith(".json"):
        raise ValueError("Nome de arquivo de backup inválido.")
    caminho = os.path.join(backup_dir(empresa.owner_id, empresa.id), nome)
    if not os.path.isfile(caminho):
        raise LookupError("Backup não encontrado.")
    return caminho


def delete_company_data(db: Session, empresa: Empresa) -> None:
    """Remove every row owned by the company (the company row itself is left to the caller)."""
    for model, fk, parent in CHILD_TABLES:
        ids = [r.id for r in db.query(parent.id).filter(parent.empresa_id == empresa.id)]
        if ids:
            db.query(model).filter(fk.in_(ids)).delete(synchronize_session=False)
    for model in reversed(COMPANY_TABLES):
        db.query(model).filter(model.empresa_id == empresa.id).delete(synchronize_session=False)
