import httpx
import logging
from typing import Dict, Optional

from config import CNPJ_LOOKUP_TIMEOUT, RECEITAWS_URL, BRASILAPI_URL
from services.parser_service import only_digits, format_cep

logger = logging.getLogger(__name__)


def validate_cnpj_input(cnpj: str) -> str:
    digits = only_digits(cnpj)
    if not digits:
        raise ValueError("O CNPJ/CPF é obrigatório.")
    if len(digits) == 11:
        raise ValueError("A busca automática não funciona para CPF.")
    if len(digits) != 14:
        raise ValueError("O CNPJ deve conter 14 dígitos.")
    return digits


def map_company_data(data: Dict) -> Dict:
    """Unify ReceitaWS and BrasilAPI payloads into the company form fields."""
    atividade = (data.get('atividade_principal') or [{}])[0]
    uf = data.get('uf') or ''
    ie = next((i.get('inscricao_estadual') for i in data.get('inscricoes_estaduais') or []
               if i.get('uf') == uf), '')
    razao = data.get('razao_social') or data.get('nome') or ''
    return {
        'razao_social': razao,
        'nome_fantasia': data.get('nome_fantasia') or data.get('fantasia') or razao,
        'cnae_principal_codigo': str(data.get('cnae_fiscal') or only_digits(atividade.get('code'))),
        'cnae_principal_descricao': data.get('cnae_fiscal_descricao') or atividade.get('text') or '',
        'cep': format_cep(data.get('cep')),
        'logradouro': data.get('logradouro') or '',
        'numero': data.get('numero') or '',
        'complemento': data.get('complemento') or '',
        'bairro': data.get('bairro') or '',
        'cidade': data.get('municipio') or '',
        'codigo_municipio': str(data.get('codigo_municipio_ibge') or ''),
        'uf': uf,
        'telefone': data.get('ddd_telefone_1') or data.get('telefone') or '',
        'email': data.get('email') or '',
        'inscricao_estadual': ie or '',
    }


async def _fetch_receitaws(client: httpx.AsyncClient, cnpj: str) -> Optional[Dict]:
    try:
        resp = await client.get(f"{RECEITAWS_URL}/{cnpj}")
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Falha na ReceitaWS: {e}")
        return None
    if data.get('status') == 'ERROR':
        logger.warning(f"Falha na ReceitaWS: {data.get('message', 'erro não informado')}")
        return None
    logger.info("Dados obtidos da ReceitaWS")
    return data


async def _fetch_brasilapi(client: httpx.AsyncClient, cnpj: str) -> Optional[Dict]:
    try:
        resp = await client.get(f"{BRASILAPI_URL}/{cnpj}")
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Falha na BrasilAPI: {e}")
        return None
    logger.info("Dados complementados/obtidos da BrasilAPI")
    return data


async def lookup_cnpj(cnpj: str, client: Optional[httpx.AsyncClient] = None) -> Dict:
    """
    Company registry data for a CNPJ.

    ReceitaWS is queried first; BrasilAPI fills the gaps or stands in when
    ReceitaWS fails. Raises ValueError for a malformed CNPJ (or a CPF) and
    LookupError when neither source knows the company.
    """
    digits = validate_cnpj_input(cnpj)
    logger.info(f"Buscando CNPJ: {digits}")

    if client is None:
        async with httpx.AsyncClient(timeout=CNPJ_LOOKUP_TIMEOUT, follow_redirects=True) as own:
            return await lookup_cnpj(digits, own)

    receitaws = await _fetch_receitaws(client, digits) or {}
    brasilapi = await _fetch_brasilapi(client, digits) or {}
    merged = {**brasilapi, **{k: v for k, v in receitaws.items() if v not in (None, '')}}

    if not (merged.get('razao_social') or merged.get('nome')):
        logger.error(f"CNPJ {digits} não encontrado em nenhuma fonte")
        raise LookupError("Não foi possível obter os dados do CNPJ. Verifique o número ou "
                          "preencha manualmente.")
    return map_company_data(merged)
