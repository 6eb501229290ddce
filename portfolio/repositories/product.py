from sqlalchemy.orm import Session

from portfolio.db.models.product import Product as ProductModel


def get_product_by_identifier(db: Session, identifier: str) -> ProductModel | None:
    """Get a product by its external identifier."""
    return db.query(ProductModel).filter(ProductModel.identifier == identifier).first()


def create_product(db: Session, identifier: str, name: str) -> ProductModel:
    """Register a product. Products are owned by the product registry; this is used for seeding."""
    db_product = ProductModel(identifier=identifier, name=name)
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    return db_product
