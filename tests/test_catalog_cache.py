"""Tests for the picker cache."""

from modcalc.services import catalog_db
from modcalc.services.catalog_cache import CatalogCache


class TestCatalogCache:
    def test_filter_order_does_not_matter(self):
        a = CatalogCache.make_key("models", year=2020, make="Honda")
        b = CatalogCache.make_key("models", make="Honda", year=2020)
        assert a == b

    def test_keys_keep_exact_filter_values(self):
        exact = CatalogCache.make_key("models", year=2020, make="Honda")
        assert CatalogCache.make_key("models", year=2020, make="honda") != exact
        assert CatalogCache.make_key("models", year=2020, make="Honda ") != exact

    def test_cached_answer_matches_uncached_lookup(self, fake_db):
        fake_db.tables["car_trims"] = [
            {"year": 2020, "make": "Honda", "model": "Civic", "trim_label": "Si"}
        ]
        cache = CatalogCache()

        def models(make):
            return cache.get_or_load(
                CatalogCache.make_key("models", year=2020, make=make),
                lambda: catalog_db.list_models(2020, make),
            )

        assert models("Honda") == ["Civic"]
        assert models("honda") == catalog_db.list_models(2020, "honda") == []

    def test_get_or_load_caches_results(self):
        cache = CatalogCache()
        calls = []

        def loader():
            calls.append(1)
            return ["Honda", "Subaru"]

        key = CatalogCache.make_key("makes", year=2020)
        assert cache.get_or_load(key, loader) == ["Honda", "Subaru"]
        assert cache.get_or_load(key, loader) == ["Honda", "Subaru"]
        assert len(calls) == 1

    def test_empty_results_are_not_cached(self):
        cache = CatalogCache()
        key = CatalogCache.make_key("years")
        assert cache.get_or_load(key, list) == []
        assert cache.get(key) is None

    def test_clear(self):
        cache = CatalogCache()
        key = CatalogCache.make_key("years")
        cache.set(key, [2020])
        cache.clear()
        assert cache.get(key) is None
