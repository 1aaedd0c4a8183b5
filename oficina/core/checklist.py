"""
Oficina Server - Checklist Template
Definição estática dos itens verificados em uma vistoria de veículo.

O template é consumido pelo motor de vistorias: materializa os itens de uma
vistoria nova e detecta itens adicionados depois (drift). A injeção é feita via
`get_checklist_provider`, o que permite trocar o template sem mexer no motor.
"""
from typing import Dict, List

# Categorias e itens do checklist
INSPECTION_CHECKLIST = [
    {
        "key": "exterior",
        "label": "Exterior Geral",
        "critical": False,
        "description": "Fotos do exterior do veículo para documentação completa",
        "items": [
            {"key": "frente", "label": "Frente Completa", "required": True},
            {"key": "traseira", "label": "Traseira Completa", "required": True},
            {"key": "lateral_esquerda", "label": "Lateral Esquerda", "required": True},
            {"key": "lateral_direita", "label": "Lateral Direita", "required": True},
            {"key": "teto", "label": "Teto", "required": True},
            {"key": "parabrisa", "label": "Para-brisa", "required": True},
            {"key": "vidro_traseiro", "label": "Vidro Traseiro", "required": True},
            {"key": "placa", "label": "Placa", "required": True},
        ],
    },
    {
        "key": "rodas",
        "label": "Rodas e Pneus",
        "critical": False,
        "items": [
            {"key": "roda_de", "label": "Roda Dianteira Esquerda", "required": True},
            {"key": "roda_dd", "label": "Roda Dianteira Direita", "required": True},
            {"key": "roda_te", "label": "Roda Traseira Esquerda", "required": True},
            {"key": "roda_td", "label": "Roda Traseira Direita", "required": True},
        ],
    },
    {
        "key": "detalhes",
        "label": "Detalhes e Danos",
        "critical": False,
        "description": "Adicione fotos de danos pré-existentes ou detalhes importantes",
        "items": [],  # Dinâmico - preenchido pelo usuário
    },
]


def generate_checklist_items(checklist: List[dict] = None) -> List[Dict]:
    """Lista plana de itens para criar no banco ao iniciar uma vistoria"""
    checklist = INSPECTION_CHECKLIST if checklist is None else checklist
    return [
        {
            "category": category["key"],
            "item_key": item["key"],
            "label": item["label"],
            "is_required": item["required"],
            "is_critical": category["critical"],
        }
        for category in checklist
        for item in category["items"]
    ]


class ChecklistTemplateProvider:
    """Fornece o template do checklist (imutável durante uma requisição)"""

    def __init__(self, checklist: List[dict] = None):
        self._checklist = INSPECTION_CHECKLIST if checklist is None else checklist

    def items(self) -> List[Dict]:
        return generate_checklist_items(self._checklist)


_default_provider = ChecklistTemplateProvider()


def get_checklist_provider() -> ChecklistTemplateProvider:
    """Dependency que entrega o template atual"""
    return _default_provider
