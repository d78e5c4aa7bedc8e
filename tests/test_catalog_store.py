"""Tests for CatalogStore and ProductQuery."""

import pytest

from cicadacove.catalog_store import CatalogStore, ProductQuery
from cicadacove.errors import (
    DuplicateSlugError,
    InvalidProductError,
    ProductNotFoundError,
    StorageError,
)

from .conftest import make_product


class TestCatalogStore:
    def test_empty_catalog(self, temp_dir):
        store = CatalogStore(temp_dir)
        products, total = store.list_products()
        assert products == []
        assert total == 0

    def test_add_and_get(self, temp_dir):
        store = CatalogStore(temp_dir)
        product = store.add_product(make_product())

        assert store.get_product(product.id).slug == "ysl-peasant-blouse"
        assert store.get_by_slug("ysl-peasant-blouse").id == product.id
        assert store.count() == 1

    def test_duplicate_slug_rejected(self, temp_dir):
        store = CatalogStore(temp_dir)
        store.add_product(make_product())

        with pytest.raises(DuplicateSlugError):
            store.add_product(make_product(title="Another"))

    def test_negative_price_rejected(self, temp_dir):
        store = CatalogStore(temp_dir)
        with pytest.raises(InvalidProductError):
            store.add_product(make_product(price=-1))

    def test_bad_status_rejected(self, temp_dir):
        store = CatalogStore(temp_dir)
        with pytest.raises(InvalidProductError):
            store.add_product(make_product(status="gone"))

    @pytest.mark.parametrize("images", [[], [""], [None]])
    def test_images_required(self, temp_dir, images):
        store = CatalogStore(temp_dir)
        with pytest.raises(InvalidProductError):
            store.add_product(make_product(images=images))
        assert store.count() == 0

    def test_get_missing(self, temp_dir):
        store = CatalogStore(temp_dir)
        with pytest.raises(ProductNotFoundError):
            store.get_product("nope")
        with pytest.raises(ProductNotFoundError):
            store.get_by_slug("nope")

    def test_get_many_skips_missing(self, backend, products):
        found = backend.catalog.get_many([products["blouse"].id, "missing"])
        assert list(found) == [products["blouse"].id]

    def test_remove(self, backend, products):
        removed = backend.catalog.remove_product(products["coat"].id)
        assert removed.slug == "chanel-boucle-coat"
        assert backend.catalog.count() == 2

        with pytest.raises(ProductNotFoundError):
            backend.catalog.remove_product(products["coat"].id)

    def test_corrupt_file_raises_storage_error(self, temp_dir):
        store = CatalogStore(temp_dir)
        store.path.write_text("{broken")
        with pytest.raises(StorageError):
            store.list_products()

    def test_unsupported_schema_version(self, temp_dir):
        store = CatalogStore(temp_dir)
        store.path.write_text('{"schema_version": 99, "products": []}')
        with pytest.raises(StorageError):
            store.count()


class TestUpdateProduct:
    def test_update_fields(self, backend, products):
        blouse = products["blouse"]
        updated = backend.catalog.update_product(blouse.id, {"price": 39900, "status": "reserved"})

        assert updated.price == 39900
        assert updated.status == "reserved"
        assert updated.created_at == blouse.created_at
        assert backend.catalog.get_product(blouse.id).price == 39900

    def test_identity_fields_not_editable(self, backend, products):
        with pytest.raises(InvalidProductError) as exc:
            backend.catalog.update_product(products["blouse"].id, {"id": "x", "created_at": "y"})
        assert "created_at" in str(exc.value)
        assert "id" in str(exc.value)

    def test_unknown_field_not_editable(self, backend, products):
        with pytest.raises(InvalidProductError):
            backend.catalog.update_product(products["blouse"].id, {"colour": "red"})

    def test_cannot_remove_all_images(self, backend, products):
        with pytest.raises(InvalidProductError):
            backend.catalog.update_product(products["blouse"].id, {"images": []})

    def test_slug_change_to_taken_slug(self, backend, products):
        with pytest.raises(DuplicateSlugError):
            backend.catalog.update_product(
                products["blouse"].id, {"slug": "chanel-boucle-coat"}
            )

    def test_slug_change_to_own_slug(self, backend, products):
        updated = backend.catalog.update_product(
            products["blouse"].id, {"slug": "ysl-peasant-blouse"}
        )
        assert updated.slug == "ysl-peasant-blouse"

    def test_update_missing(self, backend, products):
        with pytest.raises(ProductNotFoundError):
            backend.catalog.update_product("missing", {"price": 1})


class TestProductQuery:
    def test_defaults_to_available_newest_first(self, backend, products):
        listed, total = backend.catalog.list_products(ProductQuery())

        assert total == 2
        assert [p.slug for p in listed] == ["chanel-boucle-coat", "ysl-peasant-blouse"]

    def test_status_all(self, backend, products):
        _, total = backend.catalog.list_products(ProductQuery(status="all"))
        assert total == 3

    def test_status_sold(self, backend, products):
        listed, _ = backend.catalog.list_products(ProductQuery(status="sold"))
        assert [p.slug for p in listed] == ["hermes-silk-scarf"]

    def test_designer_and_era(self, backend, products):
        listed, _ = backend.catalog.list_products(
            ProductQuery(designer="Chanel", era="1990s")
        )
        assert [p.slug for p in listed] == ["chanel-boucle-coat"]

    def test_price_range(self, backend, products):
        listed, _ = backend.catalog.list_products(
            ProductQuery(status="all", min_price=9000, max_price=50000)
        )
        assert {p.slug for p in listed} == {"ysl-peasant-blouse", "hermes-silk-scarf"}

    def test_search_title_and_description(self, backend, products):
        by_title, _ = backend.catalog.list_products(ProductQuery(search="boucle"))
        by_description, _ = backend.catalog.list_products(ProductQuery(search="RUSSIAN"))

        assert [p.slug for p in by_title] == ["chanel-boucle-coat"]
        assert [p.slug for p in by_description] == ["ysl-peasant-blouse"]

    def test_featured(self, backend, products):
        listed, _ = backend.catalog.list_products(ProductQuery(featured=True))
        assert [p.slug for p in listed] == ["chanel-boucle-coat"]

    def test_sort_by_price_ascending(self, backend, products):
        listed, _ = backend.catalog.list_products(
            ProductQuery(status="all", sort_by="price", sort_order="asc")
        )
        assert [p.price for p in listed] == [9500, 45000, 120000]

    def test_missing_sort_values_sort_last(self, backend, products):
        backend.catalog.add_product(make_product(slug="no-era-slip", era=None, price=100))
        listed, _ = backend.catalog.list_products(
            ProductQuery(status="all", sort_by="era", sort_order="asc")
        )
        assert listed[-1].slug == "no-era-slip"

    def test_pagination(self, backend, products):
        page, total = backend.catalog.list_products(
            ProductQuery(status="all", sort_by="price", sort_order="asc", limit=2, offset=1)
        )
        assert total == 3
        assert [p.price for p in page] == [45000, 120000]
