from fastapi import APIRouter, Depends, HTTPException
from models.models import User
from routers.auth import get_current_user
from services.cnpj_service import lookup_cnpj

router = APIRouter(prefix="/cnpj", tags=["cnpj"])


@router.get("/{cnpj}")
async def consulta_cnpj(cnpj: str, _: User = Depends(get_current_user)):
    try:
        return await lookup_cnpj(cnpj)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
