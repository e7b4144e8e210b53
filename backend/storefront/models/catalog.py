from __future__ import annotations

from uuid import uuid4

from ..extensions import db
from ..errors import VariantNotFoundError
from ..money import round2, to_json_number
from ..variants import DEFAULT_OPTION, NO_MODEL, ResolvedVariant, VariantKey, VariantSelection
from storefront.time_utils import to_utc_z


def _uuid() -> str:
    return str(uuid4())


class Product(db.Model):
    """
    Catalog product.

    POLYMORPHISM: product_type is the discriminator of a single-table
    hierarchy. SimpleProduct carries colors directly; VariableProduct carries
    models, each with its own colors. Both expose resolve_variant() and
    iter_variants(), so business logic never branches on product_type.

    product_id is the externally stable identifier used by inventory, offers,
    carts and orders. The integer id is internal.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.String(36), nullable=False, unique=True, default=_uuid)

    product_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category_id = db.Column(db.String(64), nullable=True, index=True)
    product_type = db.Column(db.String(16), nullable=False)

    # Simple products only; variable products name their models instead
    model_name = db.Column(db.String(128), nullable=False, default=DEFAULT_OPTION)
    sku = db.Column(db.String(64), nullable=True, unique=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    colors = db.relationship(
        "ProductColor",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductColor.id",
    )

    __mapper_args__ = {
        "polymorphic_on": product_type,
        "version_id_col": version_id,
    }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} product_id={self.product_id!r} name={self.product_name!r}>"

    # Subclass hooks -------------------------------------------------------

    def _select_model(self, model_id: str):
        raise NotImplementedError

    def _colors_for(self, model) -> list["ProductColor"]:
        raise NotImplementedError

    def _model_identity(self, model) -> tuple[str, str]:
        raise NotImplementedError

    def _all_models(self) -> list:
        raise NotImplementedError

    # Shared variant accessors ---------------------------------------------

    def resolve_variant(self, selection: VariantSelection) -> ResolvedVariant:
        """Resolve a client selection to exactly one catalog variant."""
        model = self._select_model(selection.model_id)

        color = next((c for c in self._colors_for(model) if c.color_id == selection.color_id), None)
        if color is None:
            raise VariantNotFoundError(
                f"Color {selection.color_id} is not available for {self.product_name}",
                details={"product_id": self.product_id, "color_id": selection.color_id},
            )

        # An unspecified option stays "Default"; whether it is stocked is the inventory's call
        if selection.fragrance != DEFAULT_OPTION and selection.fragrance not in color.option_names():
            raise VariantNotFoundError(
                f"{selection.fragrance} is not available for {self.product_name} ({color.color_name})",
                details={"product_id": self.product_id, "fragrance": selection.fragrance},
            )

        model_id, model_name = self._model_identity(model)
        return ResolvedVariant(
            key=VariantKey(
                product_id=self.product_id,
                color_id=color.color_id,
                model_id=model_id,
                fragrance=selection.fragrance,
            ),
            product_name=self.product_name,
            color_name=color.color_name,
            model_name=model_name,
            unit_price=round2(color.current_price),
            size=selection.size,
        )

    def iter_variants(self) -> list[ResolvedVariant]:
        """Every purchasable variant of this product, in catalog order."""
        variants = []
        for model in self._all_models():
            model_id, model_name = self._model_identity(model)
            for color in self._colors_for(model):
                for option in color.option_names():
                    variants.append(ResolvedVariant(
                        key=VariantKey(self.product_id, color.color_id, model_id, option),
                        product_name=self.product_name,
                        color_name=color.color_name,
                        model_name=model_name,
                        unit_price=round2(color.current_price),
                    ))
        return variants

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "description": self.description,
            "category_id": self.category_id,
            "type": self.product_type,
            "model_name": self.model_name,
            "sku": self.sku,
            "is_active": self.is_active,
            "colors": [c.to_dict() for c in self.colors if c.model_pk is None],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SimpleProduct(Product):
    __mapper_args__ = {"polymorphic_identity": "simple"}

    def _select_model(self, model_id: str):
        # Simple products have no model dimension; any model_id is ignored
        return None

    def _colors_for(self, model) -> list["ProductColor"]:
        return [c for c in self.colors if c.model_pk is None]

    def _model_identity(self, model) -> tuple[str, str]:
        return NO_MODEL, self.model_name or DEFAULT_OPTION

    def _all_models(self) -> list:
        return [None]


class VariableProduct(Product):
    __mapper_args__ = {"polymorphic_identity": "variable"}

    models = db.relationship(
        "ProductModel",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductModel.id",
    )

    def _select_model(self, model_id: str):
        if not model_id:
            raise VariantNotFoundError(
                f"A model must be selected for {self.product_name}",
                details={"product_id": self.product_id},
            )
        model = next((m for m in self.models if m.model_id == model_id), None)
        if model is None:
            raise VariantNotFoundError(
                f"Model {model_id} is not available for {self.product_name}",
                details={"product_id": self.product_id, "model_id": model_id},
            )
        return model

    def _colors_for(self, model) -> list["ProductColor"]:
        return list(model.colors)

    def _model_identity(self, model) -> tuple[str, str]:
        return model.model_id, model.model_name

    def _all_models(self) -> list:
        return list(self.models)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["models"] = [m.to_dict() for m in self.models]
        return data


class ProductModel(db.Model):
    __tablename__ = "product_models"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    model_id = db.Column(db.String(36), nullable=False, unique=True, default=_uuid)
    product_pk = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    model_name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(64), nullable=True, unique=True)

    product = db.relationship("VariableProduct", back_populates="models")
    colors = db.relationship("ProductColor", back_populates="model", order_by="ProductColor.id")

    def to_dict(self) -> dict:
        return {
            "model_id": self.model_id,
            "model_name": self.model_name,
            "description": self.description,
            "sku": self.sku,
            "colors": [c.to_dict() for c in self.colors],
        }


class ProductColor(db.Model):
    """A color of a product (simple) or of one model (variable), with its price."""
    __tablename__ = "product_colors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    color_id = db.Column(db.String(36), nullable=False, unique=True, default=_uuid)
    product_pk = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    model_pk = db.Column(db.Integer, db.ForeignKey("product_models.id"), nullable=True, index=True)

    color_name = db.Column(db.String(128), nullable=False)
    original_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    current_price = db.Column(db.Numeric(12, 2), nullable=False)

    # Fragrance (or size) options; empty means the single "Default" option
    fragrances = db.Column(db.JSON, nullable=False, default=list)

    product = db.relationship("Product", back_populates="colors")
    model = db.relationship("ProductModel", back_populates="colors")

    def option_names(self) -> list[str]:
        return list(self.fragrances or []) or [DEFAULT_OPTION]

    def to_dict(self) -> dict:
        return {
            "color_id": self.color_id,
            "color_name": self.color_name,
            "original_price": to_json_number(self.original_price),
            "current_price": to_json_number(self.current_price),
            "fragrances": list(self.fragrances or []),
        }
