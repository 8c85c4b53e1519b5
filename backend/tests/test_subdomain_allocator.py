"""Subdomain allocation: normalization, availability order and the create-time re-check."""

import unittest
import uuid
from types import SimpleNamespace
from unittest.mock import create_autospec

from hostdesk.core.config import DEFAULT_RESERVED_SUBDOMAINS
from hostdesk.services.errors import StoreUnavailable, SubdomainUnavailable
from hostdesk.services.request_store import RequestStore
from hostdesk.services.subdomain_allocator import (
    Availability,
    SubdomainAllocator,
    normalize_label,
)


def _allocator(existing=None):
    store = create_autospec(RequestStore, instance=True)
    store.find_by_subdomain.return_value = existing
    return SubdomainAllocator(store, DEFAULT_RESERVED_SUBDOMAINS), store


class NormalizeLabelTests(unittest.TestCase):
    def test_lowercases_and_drops_disallowed_characters(self):
        self.assertEqual(normalize_label("My_Shop!"), "myshop")
        self.assertEqual(normalize_label("Ada's Bakery-2"), "adasbakery-2")

    def test_empty_and_none(self):
        self.assertEqual(normalize_label(""), "")
        self.assertEqual(normalize_label(None), "")

    def test_keeps_hyphens_and_digits(self):
        self.assertEqual(normalize_label("shop-24"), "shop-24")


class CheckAvailabilityTests(unittest.TestCase):
    def test_too_short_never_queries_store(self):
        allocator, store = _allocator()
        self.assertEqual(allocator.check_availability("ab"), Availability.TOO_SHORT)
        self.assertEqual(allocator.check_availability(""), Availability.TOO_SHORT)
        store.find_by_subdomain.assert_not_called()

    def test_reserved_never_queries_store(self):
        allocator, store = _allocator()
        for label in ("admin", "www", "api", "neka"):
            self.assertEqual(allocator.check_availability(label), Availability.RESERVED)
        store.find_by_subdomain.assert_not_called()

    def test_available_when_no_match(self):
        allocator, store = _allocator()
        self.assertEqual(allocator.check_availability("bakery1"), Availability.AVAILABLE)
        store.find_by_subdomain.assert_called_once_with("bakery1")

    def test_taken_when_store_has_match(self):
        allocator, _ = _allocator(existing=SimpleNamespace(id=uuid.uuid4()))
        self.assertEqual(allocator.check_availability("shopify"), Availability.TAKEN)

    def test_excluded_request_does_not_count_as_taken(self):
        request_id = uuid.uuid4()
        allocator, _ = _allocator(existing=SimpleNamespace(id=request_id))
        self.assertEqual(
            allocator.check_availability("shopify", exclude_request_id=str(request_id)),
            Availability.AVAILABLE,
        )
        self.assertEqual(
            allocator.check_availability("shopify", exclude_request_id=str(uuid.uuid4())),
            Availability.TAKEN,
        )

    def test_lookup_is_retried_once_on_store_failure(self):
        allocator, store = _allocator()
        store.find_by_subdomain.side_effect = [StoreUnavailable("timeout"), None]
        self.assertEqual(allocator.check_availability("bakery1"), Availability.AVAILABLE)
        self.assertEqual(store.find_by_subdomain.call_count, 2)

    def test_persistent_store_failure_propagates(self):
        allocator, store = _allocator()
        store.find_by_subdomain.side_effect = StoreUnavailable("down")
        with self.assertRaises(StoreUnavailable):
            allocator.check_availability("bakery1")
        self.assertEqual(store.find_by_subdomain.call_count, 2)

    def test_custom_reserved_list(self):
        store = create_autospec(RequestStore, instance=True)
        allocator = SubdomainAllocator(store, ["internal"])
        self.assertEqual(allocator.check_availability("internal"), Availability.RESERVED)
        store.find_by_subdomain.return_value = None
        self.assertEqual(allocator.check_availability("admin"), Availability.AVAILABLE)


class ConfirmAvailableTests(unittest.TestCase):
    def test_passes_for_available_label(self):
        allocator, _ = _allocator()
        allocator.confirm_available("bakery1")

    def test_raises_with_availability(self):
        allocator, _ = _allocator(existing=SimpleNamespace(id=uuid.uuid4()))
        with self.assertRaises(SubdomainUnavailable) as ctx:
            allocator.confirm_available("shopify")
        self.assertEqual(ctx.exception.label, "shopify")
        self.assertEqual(ctx.exception.availability, "TAKEN")

    def test_reserved_raises_before_store_access(self):
        allocator, store = _allocator()
        with self.assertRaises(SubdomainUnavailable) as ctx:
            allocator.confirm_available("admin")
        self.assertEqual(ctx.exception.availability, "RESERVED")
        store.find_by_subdomain.assert_not_called()
