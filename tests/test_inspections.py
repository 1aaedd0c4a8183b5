"""
Testes do motor de checklist das vistorias
"""
import copy

from oficina.main import app
from oficina.core import ChecklistTemplateProvider, get_checklist_provider
from oficina.core.checklist import INSPECTION_CHECKLIST
from tests.conftest import auth_headers, create_order, create_inspection, fill_required_items


async def test_create_materializes_checklist(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)

    inspection = await create_inspection(client, owner_headers, order["id"])

    assert inspection["status"] == "em_andamento"
    assert inspection["progress"] == 0
    assert len(inspection["items"]) == 12
    assert all(i["status"] == "pendente" for i in inspection["items"])
    assert all(i["completed_at"] is None for i in inspection["items"])


async def test_one_inspection_per_type(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    await create_inspection(client, owner_headers, order["id"], "entrada")

    response = await client.post(
        "/api/inspections", json={"order_id": order["id"], "type": "entrada"}, headers=owner_headers
    )

    assert response.status_code == 409
    assert response.json()["detail"]["kind"] == "conflict"


async def test_complete_requires_all_required_items(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    inspection = await create_inspection(client, owner_headers, order["id"])
    await fill_required_items(client, owner_headers, inspection, skip=2)

    response = await client.post(f"/api/inspections/{inspection['id']}/complete", headers=owner_headers)

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["kind"] == "incomplete"
    assert detail["missing_count"] == 2


async def test_concluded_inspection_is_immutable(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    inspection = await create_inspection(client, owner_headers, order["id"])
    await fill_required_items(client, owner_headers, inspection)

    completed = await client.post(f"/api/inspections/{inspection['id']}/complete", headers=owner_headers)
    assert completed.status_code == 200
    assert completed.json()["status"] == "concluida"
    assert completed.json()["progress"] == 100
    assert completed.json()["signed_at"] is not None

    item_id = inspection["items"][0]["id"]
    response = await client.patch(
        f"/api/inspections/items/{item_id}", json={"status": "pendente"}, headers=owner_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "inspection_locked"

    damage = await client.post(
        f"/api/inspections/{inspection['id']}/damage",
        json={"position": "capo", "x": 0, "y": 0.3, "damage_type": "dent"},
        headers=owner_headers,
    )
    assert damage.status_code == 400

    again = await client.post(f"/api/inspections/{inspection['id']}/complete", headers=owner_headers)
    assert again.status_code == 200


async def test_item_damage_fields_follow_status(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    inspection = await create_inspection(client, owner_headers, order["id"])
    item_id = inspection["items"][0]["id"]

    missing = await client.patch(
        f"/api/inspections/items/{item_id}", json={"status": "com_avaria"}, headers=owner_headers
    )
    assert missing.status_code == 400
    assert missing.json()["detail"]["kind"] == "invalid_item"

    damaged = await client.patch(
        f"/api/inspections/items/{item_id}",
        json={"status": "com_avaria", "damage_type": "amassado", "severity": "moderado", "notes": "Porta"},
        headers=owner_headers,
    )
    assert damaged.status_code == 200
    assert damaged.json()["damage_type"] == "amassado"
    assert damaged.json()["completed_at"] is not None

    ok = await client.patch(
        f"/api/inspections/items/{item_id}", json={"status": "ok"}, headers=owner_headers
    )
    assert ok.json()["damage_type"] is None
    assert ok.json()["severity"] is None
    assert ok.json()["notes"] == "Porta"

    reset = await client.patch(
        f"/api/inspections/items/{item_id}", json={"status": "pendente"}, headers=owner_headers
    )
    assert reset.json()["completed_at"] is None


async def test_get_by_type_returns_null_when_absent(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)

    response = await client.get(
        f"/api/inspections/order/{order['id']}/type/final", headers=owner_headers
    )

    assert response.status_code == 200
    assert response.json() is None


async def test_template_drift_appends_new_items(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    inspection = await create_inspection(client, owner_headers, order["id"])

    checklist = copy.deepcopy(INSPECTION_CHECKLIST)
    checklist[0]["items"] = checklist[0]["items"][1:]
    checklist[2]["items"].append({"key": "estepe", "label": "Estepe", "required": True})
    app.dependency_overrides[get_checklist_provider] = lambda: ChecklistTemplateProvider(checklist)

    response = await client.get(
        f"/api/inspections/order/{order['id']}/type/entrada", headers=owner_headers
    )

    keys = [i["item_key"] for i in response.json()["items"]]
    assert len(keys) == 13
    assert keys[-1] == "estepe"
    # Itens removidos do template continuam na vistoria
    assert "frente" in keys
    assert response.json()["id"] == inspection["id"]

    # Nova leitura não duplica
    again = await client.get(
        f"/api/inspections/order/{order['id']}/type/entrada", headers=owner_headers
    )
    assert len(again.json()["items"]) == 13


async def test_drift_does_not_touch_concluded_inspection(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    inspection = await create_inspection(client, owner_headers, order["id"], "final")
    await fill_required_items(client, owner_headers, inspection)
    await client.post(f"/api/inspections/{inspection['id']}/complete", headers=owner_headers)

    checklist = copy.deepcopy(INSPECTION_CHECKLIST)
    checklist[2]["items"].append({"key": "estepe", "label": "Estepe", "required": True})
    app.dependency_overrides[get_checklist_provider] = lambda: ChecklistTemplateProvider(checklist)

    response = await client.get(
        f"/api/inspections/order/{order['id']}/type/final", headers=owner_headers
    )

    assert len(response.json()["items"]) == 12
    assert response.json()["status"] == "concluida"


async def test_batch_damages_echo_client_ref_in_order(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    inspection = await create_inspection(client, owner_headers, order["id"])

    damages = [
        {"client_ref": f"marker_{n}", "position": "capo", "x": n, "y": 0.3, "damage_type": "scratch"}
        for n in range(3)
    ]
    response = await client.post(
        f"/api/inspections/{inspection['id']}/damages", json={"damages": damages}, headers=owner_headers
    )

    assert response.status_code == 201
    created = response.json()
    assert [d["client_ref"] for d in created] == ["marker_0", "marker_1", "marker_2"]
    assert [d["x"] for d in created] == [0, 1, 2]

    summary = await client.get(f"/api/inspections/order/{order['id']}", headers=owner_headers)
    assert summary.json()[0]["damages_count"] == 3


async def test_remove_damage(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    inspection = await create_inspection(client, owner_headers, order["id"])
    created = await client.post(
        f"/api/inspections/{inspection['id']}/damage",
        json={"position": "Arranhão no retrovisor", "x": 0.2, "y": 0.2, "damage_type": "scratch"},
        headers=owner_headers,
    )

    response = await client.delete(f"/api/inspections/damages/{created.json()['id']}", headers=owner_headers)
    assert response.status_code == 204

    current = await client.get(f"/api/inspections/{inspection['id']}", headers=owner_headers)
    assert current.json()["damages"] == []


async def test_signature_and_video(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    inspection = await create_inspection(client, owner_headers, order["id"])

    signed = await client.post(
        f"/api/inspections/{inspection['id']}/signature",
        json={"signature_url": "https://cdn.oficina.local/sig.png"},
        headers=owner_headers,
    )
    assert signed.json()["signed_via"] == "web"
    assert signed.json()["signed_at"] is not None

    video = await client.patch(
        f"/api/inspections/{inspection['id']}/video",
        json={"final_video_url": "https://cdn.oficina.local/final.mp4"},
        headers=owner_headers,
    )
    assert video.json()["final_video_url"] == "https://cdn.oficina.local/final.mp4"


async def test_inspection_from_other_tenant_not_found(client, owner_headers, workshop, other_workshop):
    order = await create_order(client, owner_headers, workshop)
    inspection = await create_inspection(client, owner_headers, order["id"])
    other_headers = auth_headers(other_workshop["owner"])

    response = await client.get(f"/api/inspections/{inspection['id']}", headers=other_headers)
    assert response.status_code == 404

    item_id = inspection["items"][0]["id"]
    update = await client.patch(
        f"/api/inspections/items/{item_id}", json={"status": "ok"}, headers=other_headers
    )
    assert update.status_code == 404
