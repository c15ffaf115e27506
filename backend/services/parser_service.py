import re
import calendar
from datetime import date
from typing import Optional, Tuple


# ── Helpers ───────────────────────────────────────────────────────────────────

def only_digits(value: Optional[str]) -> str:
    return re.sub(r'\D', '', value or '')


def to_float(value) -> float:
    """Lenient float conversion for XML text nodes: empty/invalid → 0.0."""
    try:
        return float(value) if value else 0.0
    except (ValueError, TypeError):
        return 0.0


# ── Período de apuração ──────────────────────────────────────────────────────

_PERIODO_RE = re.compile(r'^(0[1-9]|1[0-2])/(\d{4})$')


def parse_periodo(periodo: str) -> Tuple[int, int]:
    """'07/2024' → (7, 2024). Raises ValueError for anything else."""
    m = _PERIODO_RE.match((periodo or '').strip())
    if not m:
        raise ValueError("Período inválido. Use o formato MM/AAAA.")
    return int(m.group(1)), int(m.group(2))


def periodo_bounds(periodo: str) -> Tuple[date, date]:
    """First and last day of the month of a 'MM/YYYY' period."""
    month, year = parse_periodo(periodo)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def periodo_api(periodo: str) -> str:
    """'07/2024' → '2024-07' (perApur of eSocial/Reinf)."""
    month, year = parse_periodo(periodo)
    return f"{year}-{month:02d}"


def previous_periods(periodo: str, count: int = 12) -> list[str]:
    """The `count` periods immediately before `periodo`, oldest first."""
    month, year = parse_periodo(periodo)
    result = []
    for _ in range(count):
        month -= 1
        if month == 0:
            month, year = 12, year - 1
        result.append(f"{month:02d}/{year}")
    return list(reversed(result))


# ── Formatting ────────────────────────────────────────────────────────────────

def format_brl(value: Optional[float]) -> str:
    """1234.5 → 'R$ 1.234,50'."""
    return f"R$ {format_decimal(value)}"


def format_decimal(value: Optional[float], places: int = 2) -> str:
    """1234.5 → '1.234,50' (pt-BR grouping)."""
    text = f"{value or 0.0:,.{places}f}"
    return text.replace(',', '_').replace('.', ',').replace('_', '.')


def format_cnpj(cnpj: Optional[str]) -> str:
    d = only_digits(cnpj)
    if len(d) != 14:
        return cnpj or ''
    return f"{d[:2]}.{d[2:5]}.{d[5:8]}/{d[8:12]}-{d[12:]}"


def format_cpf(cpf: Optional[str]) -> str:
    d = only_digits(cpf)
    if len(d) != 11:
        return cpf or ''
    return f"{d[:3]}.{d[3:6]}.{d[6:9]}-{d[9:]}"


def format_cep(cep: Optional[str]) -> str:
    d = only_digits(cep)
    return f"{d[:5]}-{d[5:]}" if len(d) == 8 else d


def format_date_br(value: Optional[date]) -> str:
    return value.strftime('%d/%m/%Y') if value else ''
