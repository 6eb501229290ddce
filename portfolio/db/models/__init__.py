from portfolio.db.models.product import Product
from portfolio.db.models.charge_definition import ChargeDefinition
from portfolio.db.models.command import ChargeDefinitionCommand

__all__ = ["Product", "ChargeDefinition", "ChargeDefinitionCommand"]
