"""
Oficina Client - Car Part Detection
Aproxima a peça do veículo a partir do ponto clicado no modelo 3D.

Sistema de coordenadas (modelo com ~0.8 de comprimento, centro na origem):
- X: esquerda (-) para direita (+)
- Y: baixo para cima
- Z: traseira (-) para frente (+)
"""
from typing import Sequence

UNKNOWN_PART = "indefinido"

PART_LABELS = {
    "capo": "Capô",
    "teto": "Teto",
    "para_brisa": "Para-brisa",
    "vidro_traseiro": "Vidro Traseiro",
    "porta_dianteira_esq": "Porta Diant. Esq.",
    "porta_dianteira_dir": "Porta Diant. Dir.",
    "porta_traseira_esq": "Porta Tras. Esq.",
    "porta_traseira_dir": "Porta Tras. Dir.",
    "paralama_dianteiro_esq": "Paralama Diant. Esq.",
    "paralama_dianteiro_dir": "Paralama Diant. Dir.",
    "paralama_traseiro_esq": "Paralama Tras. Esq.",
    "paralama_traseiro_dir": "Paralama Tras. Dir.",
    "para_choque_dianteiro": "Para-choque Diant.",
    "para_choque_traseiro": "Para-choque Tras.",
    "roda_dianteira_esq": "Roda Diant. Esq.",
    "roda_dianteira_dir": "Roda Diant. Dir.",
    "roda_traseira_esq": "Roda Tras. Esq.",
    "roda_traseira_dir": "Roda Tras. Dir.",
    "lateral_esquerda": "Lateral Esquerda",
    "lateral_direita": "Lateral Direita",
    "traseira": "Traseira",
    "dianteira": "Dianteira",
    UNKNOWN_PART: "Indefinido",
}


def part_label(part: str) -> str:
    return PART_LABELS.get(part, PART_LABELS[UNKNOWN_PART])


def is_known_part(part: str) -> bool:
    return part in PART_LABELS and part != UNKNOWN_PART


def detect_car_part(position: Sequence[float], normal: Sequence[float]) -> str:
    """Retorna a chave da peça atingida, ou `indefinido`"""
    x, y, z = position
    nx, ny, nz = normal

    # Rodas: altura baixa, nos quatro cantos
    if y < 0.15:
        left = x < -0.1
        right = x > 0.1
        front = z > 0.15
        rear = z < -0.15

        if front and left:
            return "roda_dianteira_esq"
        if front and right:
            return "roda_dianteira_dir"
        if rear and left:
            return "roda_traseira_esq"
        if rear and right:
            return "roda_traseira_dir"

    if ny > 0.7 and y > 0.25:
        return "teto"

    if z > 0.2 and ny > 0.3 and y > 0.15:
        return "capo"

    if 0.1 < z < 0.35 and ny > 0.3 and nz > 0.3:
        return "para_brisa"

    if -0.35 < z < -0.1 and ny > 0.3 and nz < -0.3:
        return "vidro_traseiro"

    if z > 0.35:
        return "para_choque_dianteiro"
    if z < -0.35:
        return "para_choque_traseiro"

    if z < -0.25 and nz < -0.5:
        return "traseira"

    if z > 0.25 and nz > 0.5:
        return "dianteira"

    # Painéis laterais pela direção da normal
    left = nx < -0.5
    right = nx > 0.5

    if left or right:
        if z > 0.1:
            return "paralama_dianteiro_esq" if left else "paralama_dianteiro_dir"
        if z < -0.1:
            return "paralama_traseiro_esq" if left else "paralama_traseiro_dir"
        if z > 0:
            return "porta_dianteira_esq" if left else "porta_dianteira_dir"
        return "porta_traseira_esq" if left else "porta_traseira_dir"

    if x < -0.1:
        return "lateral_esquerda"
    if x > 0.1:
        return "lateral_direita"

    return UNKNOWN_PART
