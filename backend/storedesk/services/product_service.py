"""
Product catalog service

Master data for products: create, update, list and soft delete.

STOCK IS NOT A CATALOG FIELD:
current_stock is never patched here. An opening stock given at creation is
posted as an ENTRY movement through InventoryService.apply_movement, so the
ledger explains the product's stock from its very first unit.

Deleting a product deactivates it (is_active=False); sales and movements keep
pointing at the row.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AlreadyExistsError, EntityDeletedError, InactiveResourceError, NotFoundError, ValidationFailure
from ..domain.enums import MovementType
from ..domain.values import Price, Stock
from ..models import Brand, Category, Product, Store
from ..repositories import BaseRepository, ProductRepository
from .concurrency import begin_immediate, run_with_retry
from .inventory_service import InventoryService, get_inventory_service

PRODUCT_MUTABLE_FIELDS = {
    "sku", "name", "description", "price", "brand_id", "category_id",
    "minimum_stock", "maximum_stock", "is_active",
}


def _required_text(value, field: str, max_length: int) -> str:
    text = (value or "").strip() if isinstance(value, str) or value is None else None
    if text is None:
        raise ValidationFailure(f"{field} must be a string", details={"field": field})
    if not text:
        raise ValidationFailure(f"{field} is required", details={"field": field})
    if len(text) > max_length:
        raise ValidationFailure(
            f"{field} cannot be longer than {max_length} characters",
            details={"field": field},
        )
    return text


class ProductService:
    def __init__(
        self,
        product_repo: ProductRepository,
        store_repo: BaseRepository,
        brand_repo: BaseRepository,
        category_repo: BaseRepository,
        inventory: InventoryService,
    ):
        self.product_repo = product_repo
        self.store_repo = store_repo
        self.brand_repo = brand_repo
        self.category_repo = category_repo
        self.inventory = inventory

    @property
    def session(self):
        return self.product_repo.session

    def _load_product(self, product_id: int, *, lock: bool = False) -> Product:
        product = self.product_repo.find_by_id(product_id, lock=lock)
        if not product:
            raise NotFoundError("Product", product_id)
        return product

    def _require_store(self, store_id: int) -> Store:
        store = self.store_repo.find_by_id(store_id)
        if not store:
            raise NotFoundError("Store", store_id)
        if store.is_deleted:
            raise EntityDeletedError("Store", store_id)
        if not store.is_active:
            raise InactiveResourceError("Store", store_id, store.name)
        return store

    def _check_classifier(self, repo: BaseRepository, entity: str, entity_id, store_id: int) -> None:
        if entity_id is None:
            return
        record = repo.find_by_id(entity_id)
        if not record or record.store_id != store_id:
            raise NotFoundError(entity, entity_id)
        if record.is_deleted:
            raise EntityDeletedError(entity, entity_id)

    def _check_sku(self, store_id: int, sku: str, product_id: int | None = None) -> None:
        existing = self.product_repo.find_by_store_and_sku(store_id, sku)
        if existing and existing.id != product_id:
            raise AlreadyExistsError("Product", {"store_id": store_id, "sku": sku})

    @staticmethod
    def _check_stock_limits(minimum: int, maximum: int | None) -> None:
        if maximum is not None and maximum < minimum:
            raise ValidationFailure(
                "maximum_stock cannot be lower than minimum_stock",
                details={"minimum_stock": minimum, "maximum_stock": maximum},
            )

    # -- queries -------------------------------------------------------------

    def get_product(self, product_id: int) -> Product:
        return self._load_product(product_id)

    def list_products(self, filters: dict | None = None, *, limit: int | None = None, offset: int | None = None):
        items = self.product_repo.find_many(filters, limit=limit, offset=offset)
        return items, self.product_repo.count(filters)

    # -- writes --------------------------------------------------------------

    def create_product(
        self,
        *,
        store_id: int,
        sku: str,
        name: str,
        price,
        description: str | None = None,
        brand_id: int | None = None,
        category_id: int | None = None,
        minimum_stock=5,
        maximum_stock=None,
        initial_stock=0,
        user_id: int | None = None,
    ) -> Product:
        sku = _required_text(sku, "sku", 64)
        name = _required_text(name, "name", 255)
        price_cents = Price(price).cents
        minimum = Stock(minimum_stock if minimum_stock is not None else 5).value
        maximum = Stock(maximum_stock).value if maximum_stock is not None else None
        self._check_stock_limits(minimum, maximum)
        opening = Stock(initial_stock or 0).value

        def _op():
            begin_immediate(self.session)
            self._require_store(store_id)
            self._check_classifier(self.brand_repo, "Brand", brand_id, store_id)
            self._check_classifier(self.category_repo, "Category", category_id, store_id)
            self._check_sku(store_id, sku)

            product = Product(
                store_id=store_id,
                sku=sku,
                name=name,
                description=(description or "").strip() or None,
                brand_id=brand_id,
                category_id=category_id,
                price_cents=price_cents,
                current_stock=0,
                minimum_stock=minimum,
                maximum_stock=maximum,
                is_active=True,
            )
            try:
                self.product_repo.save(product)
            except IntegrityError:
                raise AlreadyExistsError("Product", {"store_id": store_id, "sku": sku})
            if opening:
                self.inventory.apply_movement(
                    product, MovementType.ENTRY, opening, user_id=user_id, reason="Opening stock",
                )
            self.session.commit()
            current_app.logger.info("Product %s created (sku=%s, store %s)", product.id, sku, store_id)
            return product

        return run_with_retry(_op, session=self.session)

    def update_product(self, product_id: int, patch: dict) -> Product:
        """
        Apply a partial update. Unknown keys are ignored.

        An inactive product only accepts patches that set is_active.
        """
        patch = {k: v for k, v in (patch or {}).items() if k in PRODUCT_MUTABLE_FIELDS}

        def _op():
            begin_immediate(self.session)
            product = self._load_product(product_id, lock=True)
            if not product.is_active and "is_active" not in patch:
                raise InactiveResourceError("Product", product.id, product.name)

            if "sku" in patch:
                sku = _required_text(patch["sku"], "sku", 64)
                self._check_sku(product.store_id, sku, product.id)
                product.sku = sku
            if "name" in patch:
                product.name = _required_text(patch["name"], "name", 255)
            if "description" in patch:
                product.description = (patch["description"] or "").strip() or None
            if "price" in patch:
                product.price_cents = Price(patch["price"]).cents
            if "brand_id" in patch:
                self._check_classifier(self.brand_repo, "Brand", patch["brand_id"], product.store_id)
                product.brand_id = patch["brand_id"]
            if "category_id" in patch:
                self._check_classifier(self.category_repo, "Category", patch["category_id"], product.store_id)
                product.category_id = patch["category_id"]

            minimum = product.minimum_stock
            maximum = product.maximum_stock
            if "minimum_stock" in patch:
                minimum = Stock(patch["minimum_stock"]).value
            if "maximum_stock" in patch:
                maximum = Stock(patch["maximum_stock"]).value if patch["maximum_stock"] is not None else None
            self._check_stock_limits(minimum, maximum)
            product.minimum_stock = minimum
            product.maximum_stock = maximum

            if "is_active" in patch:
                if not isinstance(patch["is_active"], bool):
                    raise ValidationFailure("is_active must be a boolean", details={"field": "is_active"})
                product.is_active = patch["is_active"]

            self.product_repo.update(product)
            self.session.commit()
            current_app.logger.info("Product %s updated (%s)", product.id, ", ".join(sorted(patch)) or "no fields")
            return product

        return run_with_retry(_op, session=self.session)

    def delete_product(self, product_id: int) -> Product:
        def _op():
            begin_immediate(self.session)
            product = self._load_product(product_id, lock=True)
            if not product.is_active:
                raise InactiveResourceError("Product", product.id, product.name)
            product.is_active = False
            self.product_repo.update(product)
            self.session.commit()
            current_app.logger.info("Product %s deactivated", product.id)
            return product

        return run_with_retry(_op, session=self.session)


def get_product_service(session=None) -> ProductService:
    return ProductService(
        product_repo=ProductRepository(session),
        store_repo=BaseRepository(session, model=Store),
        brand_repo=BaseRepository(session, model=Brand),
        category_repo=BaseRepository(session, model=Category),
        inventory=get_inventory_service(session),
    )
