"""
Testes da conciliação de pagamentos e da conclusão automática
"""
from oficina.services.payment_service import compute_balance, is_paid_in_full
from tests.conftest import create_order, move_to, open_awaiting_payment, complete_final_inspection


def test_balance_tolerance():
    assert compute_balance(100.0, 60.0) == 40.0
    assert is_paid_in_full(100.0, 99.995)
    assert not is_paid_in_full(100.0, 99.98)


async def pay(client, headers, order_id, amount, method="PIX"):
    return await client.post(
        f"/api/orders/{order_id}/payments",
        json={"method": method, "amount": amount},
        headers=headers,
    )


async def test_partial_payment_then_overpayment_rejected(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop, price=100.0)

    first = await pay(client, owner_headers, order["id"], 60.0)
    assert first.status_code == 201
    assert first.json()["received_by"] == workshop["owner"].id

    second = await pay(client, owner_headers, order["id"], 50.0)
    assert second.status_code == 400
    detail = second.json()["detail"]
    assert detail["kind"] == "amount_exceeds_balance"
    assert detail["balance"] == 40.0

    current = await client.get(f"/api/orders/{order['id']}", headers=owner_headers)
    assert current.json()["paid_amount"] == 60.0
    assert current.json()["balance"] == 40.0


async def test_rounding_tolerance_accepts_last_cent(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop, price=100.0)
    await pay(client, owner_headers, order["id"], 60.0)

    response = await pay(client, owner_headers, order["id"], 40.005)

    assert response.status_code == 201


async def test_full_payment_without_final_inspection_keeps_status(client, owner_headers, workshop):
    order = await open_awaiting_payment(client, owner_headers, workshop)

    response = await pay(client, owner_headers, order["id"], 100.0)

    assert response.status_code == 201
    assert response.json()["order_status"] == "AGUARDANDO_PAGAMENTO"

    current = await client.get(f"/api/orders/{order['id']}", headers=owner_headers)
    assert current.json()["status"] == "AGUARDANDO_PAGAMENTO"
    assert current.json()["completed_at"] is None
    assert current.json()["balance"] == 0.0


async def test_full_payment_after_final_inspection_completes(client, owner_headers, workshop):
    order = await open_awaiting_payment(client, owner_headers, workshop)
    await complete_final_inspection(client, owner_headers, order["id"])

    await pay(client, owner_headers, order["id"], 30.0)
    partial = await client.get(f"/api/orders/{order['id']}", headers=owner_headers)
    assert partial.json()["status"] == "AGUARDANDO_PAGAMENTO"

    response = await pay(client, owner_headers, order["id"], 70.0, method="DINHEIRO")

    assert response.status_code == 201
    assert response.json()["order_status"] == "CONCLUIDO"

    current = await client.get(f"/api/orders/{order['id']}", headers=owner_headers)
    assert current.json()["status"] == "CONCLUIDO"
    assert current.json()["completed_at"] is not None


async def test_full_payment_during_execution_does_not_skip_states(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    await move_to(client, owner_headers, order["id"], "EM_VISTORIA", "EM_EXECUCAO")
    await complete_final_inspection(client, owner_headers, order["id"])

    response = await pay(client, owner_headers, order["id"], 100.0)

    assert response.status_code == 201
    assert response.json()["order_status"] == "EM_EXECUCAO"


async def test_payment_on_cancelled_order_rejected(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)
    await move_to(client, owner_headers, order["id"], "CANCELADO")

    response = await pay(client, owner_headers, order["id"], 10.0)

    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "order_closed"


async def test_non_positive_amount_is_validation_error(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop)

    response = await pay(client, owner_headers, order["id"], 0)

    assert response.status_code == 422


async def test_list_payments(client, owner_headers, workshop):
    order = await create_order(client, owner_headers, workshop, price=100.0)
    await pay(client, owner_headers, order["id"], 25.0)
    await pay(client, owner_headers, order["id"], 25.0, method="CARTAO_CREDITO")

    response = await client.get(f"/api/orders/{order['id']}/payments", headers=owner_headers)

    assert response.status_code == 200
    assert [p["method"] for p in response.json()] == ["PIX", "CARTAO_CREDITO"]
