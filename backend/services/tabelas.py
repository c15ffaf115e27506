"""
Tabelas oficiais usadas pelo motor de cálculo (vigência 2024).

Os valores são publicados pelo governo (Portaria Interministerial MPS/MF,
Lei 14.848/2024, LC 123/2006 com redação da LC 155/2016). Quando uma tabela
mudar, basta atualizar aqui.
"""

import math

# ── Salário mínimo ────────────────────────────────────────────────────────────
SALARIO_MINIMO = 1412.00

# ── INSS (empregado): (limite, alíquota, parcela a deduzir) ──────────────────
INSS_FAIXAS = [
    (1412.00, 0.075, 0.00),
    (2666.68, 0.09, 21.18),
    (4000.03, 0.12, 101.18),
    (7786.02, 0.14, 181.18),
]
INSS_TETO = 908.85
INSS_ALIQUOTA_SOCIO = 0.11

# ── IRRF: (limite, alíquota, parcela a deduzir) ─────────────────────────────
IRRF_FAIXAS = [
    (2259.20, 0.0, 0.00),
    (2826.65, 0.075, 169.44),
    (3751.05, 0.15, 381.44),
    (4664.68, 0.225, 662.77),
    (math.inf, 0.275, 896.00),
]
IRRF_DEDUCAO_DEPENDENTE = 189.59
IRRF_DESCONTO_SIMPLIFICADO = 564.80  # 25% do limite da faixa isenta

# ── FGTS ─────────────────────────────────────────────────────────────────────
FGTS_ALIQUOTA = 0.08
FGTS_MULTA_RESCISORIA = 0.40

# ── Salário-família ───────────────────────────────────────────────────────────
SALARIO_FAMILIA_LIMITE = 1819.26
SALARIO_FAMILIA_COTA = 62.04

# ── Jornada ──────────────────────────────────────────────────────────────────
HORAS_MENSAIS = 220

# ── Simples Nacional: (limite RBT12, alíquota nominal, parcela a deduzir) ───
SIMPLES_LIMITE = 4_800_000.00
SIMPLES_FATOR_R_MINIMO = 0.28

SIMPLES_ANEXOS = {
    # Comércio
    "I": [
        (180_000.00, 0.040, 0.00),
        (360_000.00, 0.073, 5_940.00),
        (720_000.00, 0.095, 13_860.00),
        (1_800_000.00, 0.107, 22_500.00),
        (3_600_000.00, 0.143, 87_300.00),
        (4_800_000.00, 0.190, 378_000.00),
    ],
    # Indústria
    "II": [
        (180_000.00, 0.045, 0.00),
        (360_000.00, 0.078, 5_940.00),
        (720_000.00, 0.100, 13_860.00),
        (1_800_000.00, 0.112, 22_500.00),
        (3_600_000.00, 0.147, 85_500.00),
        (4_800_000.00, 0.300, 720_000.00),
    ],
    # Serviços (locação de bens móveis, Fator R ≥ 28%, ...)
    "III": [
        (180_000.00, 0.060, 0.00),
        (360_000.00, 0.112, 9_360.00),
        (720_000.00, 0.135, 17_640.00),
        (1_800_000.00, 0.160, 35_640.00),
        (3_600_000.00, 0.210, 125_640.00),
        (4_800_000.00, 0.330, 648_000.00),
    ],
    # Serviços com CPP fora do DAS (construção, advocacia, vigilância, ...)
    "IV": [
        (180_000.00, 0.045, 0.00),
        (360_000.00, 0.090, 8_100.00),
        (720_000.00, 0.102, 12_420.00),
        (1_800_000.00, 0.140, 39_780.00),
        (3_600_000.00, 0.220, 183_780.00),
        (4_800_000.00, 0.330, 828_000.00),
    ],
    # Serviços intelectuais com Fator R < 28%
    "V": [
        (180_000.00, 0.155, 0.00),
        (360_000.00, 0.180, 4_500.00),
        (720_000.00, 0.195, 9_900.00),
        (1_800_000.00, 0.205, 17_100.00),
        (3_600_000.00, 0.230, 62_100.00),
        (4_800_000.00, 0.305, 540_000.00),
    ],
}
