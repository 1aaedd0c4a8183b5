"""
Oficina Server - Dados de desenvolvimento
Cria uma oficina com dono, mecânico, cliente e veículo e imprime os tokens de acesso.

Uso:
    python seed_dev_data.py
    python seed_dev_data.py "Auto Center Teste"
"""
import asyncio
import sys
from datetime import timedelta

from oficina.core import create_access_token
from oficina.database import AsyncSessionLocal, init_db
from oficina.models import Tenant, TenantStatus, User, UserRole, Customer, Vehicle


async def seed_workshop(
    db,
    name: str = "Oficina Teste",
    status: str = TenantStatus.ACTIVE.value,
    email_prefix: str = "dev"
) -> dict:
    """Cria tenant + usuários + cliente + veículo e devolve os objetos criados"""
    tenant = Tenant(name=name, phone="(11) 99999-9999", status=status)
    db.add(tenant)
    await db.flush()

    owner = User(
        tenant_id=tenant.id,
        name="Dono da Oficina",
        email=f"{email_prefix}.owner.{tenant.id[:8]}@oficina.local",
        role=UserRole.OWNER.value,
    )
    mechanic = User(
        tenant_id=tenant.id,
        name="Mecânico",
        email=f"{email_prefix}.member.{tenant.id[:8]}@oficina.local",
        role=UserRole.MEMBER.value,
    )
    customer = Customer(tenant_id=tenant.id, name="João Silva", phone="(11) 98888-7777")
    db.add_all([owner, mechanic, customer])
    await db.flush()

    vehicle = Vehicle(
        tenant_id=tenant.id,
        customer_id=customer.id,
        customer=customer,
        plate="ABC1D23",
        brand="Volkswagen",
        model="Gol",
        color="Prata",
    )
    db.add(vehicle)
    await db.commit()

    return {
        "tenant": tenant,
        "owner": owner,
        "member": mechanic,
        "customer": customer,
        "vehicle": vehicle,
    }


def token_for(user: User) -> str:
    return create_access_token({"sub": user.id}, expires_delta=timedelta(days=7))


async def main():
    name = sys.argv[1] if len(sys.argv) > 1 else "Oficina Teste"

    print("=== Setup de Dados de Desenvolvimento ===\n")
    await init_db()

    async with AsyncSessionLocal() as db:
        data = await seed_workshop(db, name=name)

    print(f"Tenant:   {data['tenant'].name} (ID: {data['tenant'].id})")
    print(f"Veículo:  {data['vehicle'].plate} (ID: {data['vehicle'].id})")
    print(f"Dono:     {data['owner'].email} (ID: {data['owner'].id})")
    print(f"Mecânico: {data['member'].email} (ID: {data['member'].id})")
    print("\nTokens (válidos por 7 dias, use SECRET_KEY fixo no .env):")
    print(f"  OWNER:  {token_for(data['owner'])}")
    print(f"  MEMBER: {token_for(data['member'])}")


if __name__ == "__main__":
    asyncio.run(main())
