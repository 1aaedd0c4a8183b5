"""
Testes do rascunho de marcações de dano
"""
import pytest
from httpx import ASGITransport

from oficina.main import app
from oficina.client import (
    DamageMarkerStore,
    InspectionClient,
    ApiError,
    UndescribedMarkerError,
    is_describable,
)
from tests.conftest import auth_headers, create_order, create_inspection


class FakeClient:
    """Cliente em memória que devolve ids sequenciais"""

    def __init__(self, fail=False, echo_ref=True, reverse=False, remove_error=None):
        self.fail = fail
        self.echo_ref = echo_ref
        self.reverse = reverse
        self.remove_error = remove_error
        self.calls = []
        self.removed = []

    async def add_damages(self, inspection_id, damages):
        self.calls.append((inspection_id, damages))
        if self.fail:
            raise ApiError(503, {"kind": "unavailable", "message": "Serviço indisponível"})

        results = []
        for index, damage in enumerate(damages):
            data = {"id": f"srv-{len(self.calls)}-{index}", "position": damage["position"]}
            if self.echo_ref:
                data["client_ref"] = damage["client_ref"]
            results.append(data)
        return list(reversed(results)) if self.reverse else results

    async def remove_damage(self, damage_id):
        if self.remove_error:
            error, self.remove_error = self.remove_error, None
            raise error
        self.removed.append(damage_id)


def store_with_markers(count=3) -> DamageMarkerStore:
    store = DamageMarkerStore()
    store.set_context("insp-1", "order-1")
    for n in range(count):
        store.add((0.0, 0.3, 0.1 * n), (0.0, 1.0, 0.0))
    return store


def test_add_selects_and_detects_part():
    store = DamageMarkerStore()

    marker = store.add((0.0, 0.4, 0.0), (0.0, 1.0, 0.0))

    assert marker.part_name == "teto"
    assert marker.damage_type == "scratch"
    assert marker.severity == 2
    assert store.selected is marker
    assert store.is_dirty


def test_update_of_persisted_marker_makes_it_dirty():
    store = DamageMarkerStore()
    store.hydrate([{"id": "d1", "position": "capo", "x": 0, "y": 0.3, "z": 0.3, "damage_type": "dent"}])
    assert not store.is_dirty

    store.update("d1", severity=3)

    assert store.get("d1").severity == 3
    assert store.is_dirty
    assert [m.id for m in store.unpersisted()] == ["d1"]


def test_update_validates_fields():
    store = store_with_markers(1)
    marker_id = store.markers[0].id

    with pytest.raises(ValueError):
        store.update(marker_id, severity=5)
    with pytest.raises(ValueError):
        store.update(marker_id, is_persisted=True)


def test_remove_clears_selection():
    store = store_with_markers(2)
    selected = store.selected

    store.remove(selected.id)

    assert store.selected is None
    assert len(store.markers) == 1


def test_hydrate_keeps_manual_descriptions():
    store = DamageMarkerStore()

    store.hydrate([
        {"id": "d1", "position": "capo", "damage_type": "dent"},
        {"id": "d2", "position": "Risco no retrovisor", "damage_type": "scratch"},
    ])

    assert store.get("d1").part_name == "capo"
    assert store.get("d2").part_name == "indefinido"
    assert store.get("d2").custom_position == "Risco no retrovisor"
    assert all(m.is_persisted for m in store.markers)


def test_clear_resets_state():
    store = store_with_markers(2)
    store.toggle_adding_mode()

    store.clear()

    assert store.markers == []
    assert store.is_adding_marker
    assert not store.is_dirty


def test_unknown_part_needs_description():
    store = DamageMarkerStore()
    marker = store.add((0.0, 0.2, 0.0), (0.0, 0.0, 0.0))
    assert marker.part_name == "indefinido"
    assert not is_describable(marker)

    store.update(marker.id, custom_position="  ")
    assert not is_describable(marker)

    store.update(marker.id, custom_position="Friso da porta")
    assert is_describable(marker)
    assert marker.to_payload()["position"] == "Friso da porta"


async def test_save_marks_all_persisted():
    store = store_with_markers(3)
    client = FakeClient()

    saved = await store.save(client)

    assert len(saved) == 3
    assert all(m.is_persisted for m in store.markers)
    assert not store.is_dirty
    assert [m.server_id for m in store.markers] == ["srv-1-0", "srv-1-1", "srv-1-2"]


async def test_save_sends_only_unpersisted():
    store = store_with_markers(2)
    client = FakeClient()
    await store.save(client)

    store.add((0.3, 0.3, 0.0), (1.0, 0.0, 0.0))
    await store.save(client)

    assert len(client.calls[1][1]) == 1


async def test_failed_save_changes_nothing_and_retry_resends():
    store = store_with_markers(3)

    with pytest.raises(ApiError):
        await store.save(FakeClient(fail=True))

    assert store.is_dirty
    assert not any(m.is_persisted for m in store.markers)

    client = FakeClient()
    await store.save(client)
    assert len(client.calls[0][1]) == 3
    assert not store.is_dirty


async def test_save_maps_by_client_ref_regardless_of_order():
    store = store_with_markers(3)

    await store.save(FakeClient(reverse=True))

    assert [m.server_id for m in store.markers] == ["srv-1-0", "srv-1-1", "srv-1-2"]


async def test_save_falls_back_to_index_without_client_ref():
    store = store_with_markers(2)

    await store.save(FakeClient(echo_ref=False))

    assert [m.server_id for m in store.markers] == ["srv-1-0", "srv-1-1"]


async def test_save_refuses_undescribed_markers():
    store = DamageMarkerStore()
    store.set_context("insp-1", "order-1")
    marker = store.add((0.0, 0.2, 0.0), (0.0, 0.0, 0.0))
    client = FakeClient()

    with pytest.raises(UndescribedMarkerError) as exc:
        await store.save(client, require_description=True)

    assert exc.value.marker_ids == [marker.id]
    assert client.calls == []


async def test_save_without_changes_is_noop():
    store = DamageMarkerStore()
    client = FakeClient()

    assert await store.save(client) == []
    assert client.calls == []


def hydrated_store() -> DamageMarkerStore:
    store = DamageMarkerStore()
    store.set_context("insp-1", "order-1")
    store.hydrate([{"id": "d1", "position": "capo", "damage_type": "dent", "severity": 2}])
    return store


async def test_edited_persisted_marker_replaces_server_row():
    store = hydrated_store()
    client = FakeClient()

    store.update("d1", severity=3)
    saved = await store.save(client)

    assert len(client.calls) == 1
    assert client.calls[0][1][0]["severity"] == 3
    assert client.removed == ["d1"]
    assert saved[0].server_id == "srv-1-0"
    assert saved[0].replaces is None
    assert not store.is_dirty


async def test_removed_persisted_marker_is_deleted_on_save():
    store = hydrated_store()
    client = FakeClient()

    store.remove("d1")
    assert store.is_dirty

    assert await store.save(client) == []
    assert client.calls == []
    assert client.removed == ["d1"]
    assert not store.is_dirty


async def test_removed_draft_needs_no_server_call():
    store = store_with_markers(1)
    client = FakeClient()

    store.remove(store.markers[0].id)

    assert not store.is_dirty
    assert await store.save(client) == []
    assert client.removed == []


async def test_remove_after_edit_deletes_original_row():
    store = hydrated_store()
    client = FakeClient()

    store.update("d1", notes="Amassado leve")
    store.remove("d1")
    await store.save(client)

    assert client.calls == []
    assert client.removed == ["d1"]


async def test_failed_delete_is_retried_without_recreating():
    store = hydrated_store()
    store.update("d1", severity=1)
    client = FakeClient(remove_error=ApiError(503, {"kind": "unavailable", "message": "Indisponível"}))

    with pytest.raises(ApiError):
        await store.save(client)

    assert store.get("d1").is_persisted
    assert store.is_dirty

    await store.save(client)
    assert len(client.calls) == 1
    assert client.removed == ["d1"]
    assert not store.is_dirty


async def test_delete_of_missing_row_counts_as_done():
    store = hydrated_store()
    store.remove("d1")
    client = FakeClient(remove_error=ApiError(404, {"kind": "not_found", "message": "Marcação não encontrada"}))

    await store.save(client)

    assert not store.is_dirty


def test_hydrate_discards_pending_deletes():
    store = hydrated_store()
    store.remove("d1")

    store.hydrate([])

    assert store.pending_deletes == []
    assert not store.is_dirty


async def test_save_against_api(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    inspection = await create_inspection(client, owner_headers, order["id"])

    store = DamageMarkerStore()
    store.set_context(inspection["id"], order["id"])
    store.add((0.0, 0.2, 0.3), (0.0, 1.0, 0.0))
    store.add((-0.3, 0.2, 0.05), (-1.0, 0.0, 0.0))
    store.add((0.0, 0.2, -0.4), (0.0, 0.0, -1.0))

    token = owner_headers["Authorization"].split(" ", 1)[1]
    async with InspectionClient("http://test", token, transport=ASGITransport(app=app)) as api:
        saved = await store.save(api)
        persisted = await api.get_inspection(inspection["id"])

    assert len(saved) == 3
    assert not store.is_dirty
    assert sorted(d["id"] for d in persisted["damages"]) == sorted(m.server_id for m in store.markers)
    assert [d["position"] for d in persisted["damages"]] == [
        "capo", "porta_dianteira_esq", "para_choque_traseiro"
    ]


async def test_api_client_raises_structured_errors(client, workshop, other_workshop):
    owner = auth_headers(other_workshop["owner"])
    token = owner["Authorization"].split(" ", 1)[1]

    async with InspectionClient("http://test", token, transport=ASGITransport(app=app)) as api:
        with pytest.raises(ApiError) as exc:
            await api.get_inspection("inexistente")

    assert exc.value.status_code == 404
    assert exc.value.kind == "not_found"
    assert not exc.value.retryable


async def test_edit_and_remove_keep_server_in_sync(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    inspection = await create_inspection(client, owner_headers, order["id"])
    token = owner_headers["Authorization"].split(" ", 1)[1]

    async with InspectionClient("http://test", token, transport=ASGITransport(app=app)) as api:
        draft = DamageMarkerStore()
        draft.set_context(inspection["id"], order["id"])
        draft.add((0.0, 0.2, 0.3), (0.0, 1.0, 0.0))
        await draft.save(api)

        store = DamageMarkerStore()
        store.set_context(inspection["id"], order["id"])
        store.hydrate((await api.get_inspection(inspection["id"]))["damages"])
        original_id = store.markers[0].id

        store.update(original_id, severity=3)
        await store.save(api)
        damages = (await api.get_inspection(inspection["id"]))["damages"]
        assert [(d["id"], d["severity"]) for d in damages] == [(store.markers[0].server_id, 3)]
        assert damages[0]["id"] != original_id

        store.remove(original_id)
        assert store.is_dirty
        await store.save(api)
        damages = (await api.get_inspection(inspection["id"]))["damages"]

    assert damages == []
    assert store.markers == []
    assert not store.is_dirty
