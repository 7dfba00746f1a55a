"""Default templates shipped with the service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notification_service.features.notifications.entities import Template

if TYPE_CHECKING:
    from notification_service.features.notifications.ports import TemplateRepository

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES: tuple[Template, ...] = (
    # Email
    Template(
        template_key="order_paid",
        channel="email",
        subject="Pedido confirmado - #{{ orderId }}",
        body=(
            "Olá {{ customerName }},\n\n"
            "Seu pedido #{{ orderId }} foi confirmado e está sendo preparado!\n\n"
            "Valor: R$ {{ amount }}\n"
            "Restaurante: {{ restaurantName }}\n\n"
            "Obrigado por escolher Click Delivery!"
        ),
    ),
    Template(
        template_key="delivery_assigned",
        channel="email",
        subject="Nova entrega disponível - #{{ deliveryId }}",
        body=(
            "Olá {{ delivererName }},\n\n"
            "Você tem uma nova entrega!\n\n"
            "Entrega #{{ deliveryId }}\n"
            "Endereço: {{ address }}\n"
            "Distância: {{ distance }} km\n\n"
            "Boa entrega!"
        ),
    ),
    Template(
        template_key="rental_started",
        channel="email",
        subject="Locação iniciada - {{ vehicleModel }}",
        body=(
            "Olá {{ renterName }},\n\n"
            "Sua locação do veículo {{ vehicleModel }} foi iniciada!\n\n"
            "Período: {{ startDate }} até {{ endDate }}\n"
            "Valor diário: R$ {{ dailyRate }}\n\n"
            "Bom trabalho!"
        ),
    ),
    # SMS
    Template(
        template_key="order_paid",
        channel="sms",
        body=(
            "Click Delivery: Pedido #{{ orderId }} confirmado! Valor: R$ {{ amount }}. "
            "Seu pedido está sendo preparado."
        ),
    ),
    Template(
        template_key="delivery_assigned",
        channel="sms",
        body=(
            "Click Delivery: Nova entrega #{{ deliveryId }}! Endereço: {{ address }}. "
            "Distância: {{ distance }} km."
        ),
    ),
    Template(
        template_key="rental_started",
        channel="sms",
        body="Click Delivery: Locação de {{ vehicleModel }} iniciada! Período: {{ startDate }} a {{ endDate }}.",
    ),
    # Push
    Template(
        template_key="order_paid",
        channel="push",
        subject="Pedido confirmado!",
        body="Seu pedido #{{ orderId }} foi confirmado e está sendo preparado. Valor: R$ {{ amount }}",
    ),
    Template(
        template_key="delivery_assigned",
        channel="push",
        subject="Nova entrega!",
        body="Você tem uma nova entrega #{{ deliveryId }}. Distância: {{ distance }} km",
    ),
    Template(
        template_key="rental_started",
        channel="push",
        subject="Locação iniciada!",
        body="Sua locação do {{ vehicleModel }} foi iniciada com sucesso!",
    ),
)


async def seed_default_templates(repository: TemplateRepository) -> dict[str, int]:
    """Insert default templates that do not exist yet.

    Returns:
        Counts of ``inserted``, ``skipped`` and ``total`` templates.
    """
    inserted = skipped = 0
    for template in DEFAULT_TEMPLATES:
        existing = await repository.find_by_key(template.template_key, template.channel, template.locale)
        if existing is not None:
            skipped += 1
            continue
        await repository.save(
            Template(
                template_key=template.template_key,
                channel=template.channel,
                locale=template.locale,
                subject=template.subject,
                body=template.body,
                version=template.version,
            ),
        )
        inserted += 1

    logger.info(
        "Template seeding completed",
        extra={"inserted": inserted, "skipped": skipped, "total": len(DEFAULT_TEMPLATES)},
    )
    return {"inserted": inserted, "skipped": skipped, "total": len(DEFAULT_TEMPLATES)}
