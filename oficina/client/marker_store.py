"""
Oficina Client - Damage Marker Draft Store
Rascunho local das marcações de dano feitas no modelo 3D.

As marcações vivem só no cliente até um `save()` bem-sucedido. Apenas o
subconjunto não persistido é enviado, e só ele é marcado como persistido
depois da resposta do servidor; se o envio falhar nada muda e um novo
`save()` reenvia o mesmo subconjunto.

Marcações gravadas são imutáveis no servidor: editar uma delas gera uma nova
linha e a antiga é apagada depois que a substituta é confirmada; remover uma
delas agenda a exclusão da linha para o próximo `save()`.
"""
import logging
import random
import string
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from oficina.client.api_client import ApiError
from oficina.client.car_parts import detect_car_part, is_known_part, part_label, UNKNOWN_PART

logger = logging.getLogger(__name__)

DAMAGE_TYPES = ("scratch", "dent", "crack", "paint")

# Campos que o chamador pode alterar via update()
EDITABLE_FIELDS = {
    "position",
    "normal",
    "part_name",
    "custom_position",
    "damage_type",
    "severity",
    "notes",
    "photo_url",
}

Vector = Tuple[float, float, float]


def generate_marker_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"marker_{int(time.time() * 1000)}_{suffix}"


class UndescribedMarkerError(ValueError):
    """Marcações em peça `indefinido` sem descrição manual"""

    def __init__(self, marker_ids: List[str]):
        self.marker_ids = marker_ids
        super().__init__(f"{len(marker_ids)} marcação(ões) sem descrição da posição")


@dataclass
class Marker:
    id: str
    position: Vector
    normal: Vector
    part_name: str
    damage_type: str = "scratch"
    severity: int = 2
    notes: str = ""
    custom_position: Optional[str] = None
    photo_url: Optional[str] = None
    is_persisted: bool = False
    server_id: Optional[str] = None
    # Linha do servidor que esta marcação substitui após uma edição
    replaces: Optional[str] = None

    @property
    def label(self) -> str:
        return self.custom_position or part_label(self.part_name)

    def to_payload(self) -> Dict:
        """Corpo de uma marcação para o endpoint de lote"""
        return {
            "client_ref": self.id,
            # Peça não reconhecida vai com a descrição manual
            "position": self.custom_position or self.part_name,
            "x": self.position[0],
            "y": self.position[1],
            "z": self.position[2],
            "normal_x": self.normal[0],
            "normal_y": self.normal[1],
            "normal_z": self.normal[2],
            "is_3d": True,
            "damage_type": self.damage_type,
            "severity": self.severity,
            "notes": self.notes,
            "photo_url": self.photo_url,
        }

    @classmethod
    def from_server(cls, data: Dict) -> "Marker":
        position = data.get("position") or UNKNOWN_PART
        known = is_known_part(position)
        return cls(
            id=data["id"],
            server_id=data["id"],
            position=(data.get("x", 0), data.get("y", 0), data.get("z", 0)),
            normal=(data.get("normal_x", 0), data.get("normal_y", 1), data.get("normal_z", 0)),
            part_name=position if known else UNKNOWN_PART,
            custom_position=None if known or position == UNKNOWN_PART else position,
            damage_type=data.get("damage_type") or "scratch",
            severity=data.get("severity") or 2,
            notes=data.get("notes") or "",
            photo_url=data.get("photo_url"),
            is_persisted=True,
        )


def is_describable(marker: Marker) -> bool:
    """Marcação em peça desconhecida precisa de descrição manual"""
    if marker.part_name != UNKNOWN_PART:
        return True
    return bool(marker.custom_position and marker.custom_position.strip())


def _validate_fields(fields: Dict):
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Campos não editáveis: {', '.join(sorted(unknown))}")
    if "damage_type" in fields and fields["damage_type"] not in DAMAGE_TYPES:
        raise ValueError(f"Tipo de dano inválido: {fields['damage_type']}")
    if "severity" in fields and fields["severity"] not in (1, 2, 3):
        raise ValueError("Gravidade deve ser 1, 2 ou 3")


class DamageMarkerStore:
    """Coleção de marcações de um único editor (sem concorrência)"""

    def __init__(self):
        self.markers: List[Marker] = []
        self.selected_id: Optional[str] = None
        self.is_adding_marker = True
        self.inspection_id: Optional[str] = None
        self.order_id: Optional[str] = None
        # Ids do servidor a apagar no próximo save()
        self.pending_deletes: List[str] = []

    # --- contexto e seleção ---

    def set_context(self, inspection_id: Optional[str], order_id: Optional[str]):
        self.inspection_id = inspection_id
        self.order_id = order_id

    def toggle_adding_mode(self) -> bool:
        self.is_adding_marker = not self.is_adding_marker
        return self.is_adding_marker

    def select(self, marker_id: Optional[str]):
        self.selected_id = marker_id

    @property
    def selected(self) -> Optional[Marker]:
        return self.get(self.selected_id) if self.selected_id else None

    def get(self, marker_id: str) -> Optional[Marker]:
        return next((m for m in self.markers if m.id == marker_id), None)

    # --- edição ---

    def add(self, position: Vector, normal: Vector) -> Marker:
        """Cria uma marcação no ponto clicado e a seleciona"""
        marker = Marker(
            id=generate_marker_id(),
            position=tuple(position),
            normal=tuple(normal),
            part_name=detect_car_part(position, normal),
        )
        self.markers.append(marker)
        self.selected_id = marker.id
        logger.debug(f"Marcação {marker.id} em {marker.part_name}")
        return marker

    def update(self, marker_id: str, **fields) -> Optional[Marker]:
        """
        Altera a marcação; qualquer edição exige novo envio ao servidor.
        Uma marcação já gravada passa a substituir a linha original.
        """
        marker = self.get(marker_id)
        if not marker:
            return None

        _validate_fields(fields)
        for name, value in fields.items():
            if name in ("position", "normal"):
                value = tuple(value)
            setattr(marker, name, value)

        if marker.server_id:
            marker.replaces = marker.server_id
            marker.server_id = None
        marker.is_persisted = False
        return marker

    def remove(self, marker_id: str) -> Optional[Marker]:
        """Remove a marcação; a linha gravada (se houver) é apagada no próximo save()"""
        marker = self.get(marker_id)
        if not marker:
            return None

        for damage_id in (marker.server_id, marker.replaces):
            if damage_id:
                self.pending_deletes.append(damage_id)

        self.markers.remove(marker)
        if self.selected_id == marker_id:
            self.selected_id = None
        return marker

    def hydrate(self, server_markers: List[Dict]):
        """Substitui o estado local pelas marcações já gravadas"""
        self.markers = [Marker.from_server(data) for data in server_markers]
        self.pending_deletes = []
        self.selected_id = None

    def clear(self):
        self.markers = []
        self.pending_deletes = []
        self.selected_id = None
        self.is_adding_marker = True

    # --- sincronização ---

    def unpersisted(self) -> List[Marker]:
        return [m for m in self.markers if not m.is_persisted]

    @property
    def is_dirty(self) -> bool:
        return bool(self.pending_deletes) or any(not m.is_persisted for m in self.markers)

    async def save(self, client, require_description: bool = False) -> List[Marker]:
        """
        Envia as marcações não persistidas e marca como persistidas as que o
        servidor confirmou. Depois apaga as linhas removidas ou substituídas.
        Retorna as marcações gravadas.

        Os ids do servidor são associados pelo client_ref ecoado; sem ele, pela
        posição na resposta. Qualquer erro do cliente HTTP é propagado; o que
        ainda não foi confirmado continua pendente para o próximo save().
        """
        pending = self.unpersisted()
        if not pending and not self.pending_deletes:
            return []

        if not self.inspection_id:
            raise ValueError("Nenhuma vistoria selecionada")

        if require_description:
            undescribed = [m.id for m in pending if not is_describable(m)]
            if undescribed:
                raise UndescribedMarkerError(undescribed)

        saved = []
        if pending:
            saved = await self._create(client, pending)

        await self._delete_pending(client)
        return saved

    async def _create(self, client, pending: List[Marker]) -> List[Marker]:
        results = await client.add_damages(
            self.inspection_id,
            [m.to_payload() for m in pending]
        )

        by_ref = {m.id: m for m in pending}
        saved = []
        for index, data in enumerate(results):
            ref = data.get("client_ref")
            if ref:
                marker = by_ref.get(ref)
            else:
                marker = pending[index] if index < len(pending) else None

            if marker is None or marker.is_persisted:
                continue

            marker.server_id = data["id"]
            marker.is_persisted = True
            if marker.replaces:
                self.pending_deletes.append(marker.replaces)
                marker.replaces = None
            saved.append(marker)

        if len(saved) != len(pending):
            logger.warning(
                f"Vistoria {self.inspection_id}: {len(pending) - len(saved)} marcações sem confirmação do servidor"
            )

        return saved

    async def _delete_pending(self, client):
        while self.pending_deletes:
            damage_id = self.pending_deletes[0]
            try:
                await client.remove_damage(damage_id)
            except ApiError as e:
                # Já apagada em uma tentativa anterior
                if e.status_code != 404:
                    raise
                logger.info(f"Marcação {damage_id} já não existe no servidor")
            self.pending_deletes.pop(0)
