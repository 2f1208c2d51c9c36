"""Tests for vendor normalization and view invalidation events."""

import pytest

from app.invoicing.models_db import Vendor
from app.invoicing.services.events import ViewRefreshNotifier, invoice_path
from app.invoicing.services.vendors import get_or_create_vendor, normalize_vendor_name


class TestNormalizeVendorName:
    """Tests for normalize_vendor_name."""

    def test_case_and_punctuation_are_ignored(self):
        assert normalize_vendor_name("Acme Inc.") == "acme-inc"
        assert normalize_vendor_name("ACME INC") == "acme-inc"
        assert normalize_vendor_name("  acme,   inc ") == "acme-inc"

    def test_accents_are_folded(self):
        assert normalize_vendor_name("Café Éclair Ltée") == "cafe-eclair-ltee"

    def test_ampersand_and_apostrophe(self):
        assert normalize_vendor_name("Smith & Sons") == "smith-and-sons"
        assert normalize_vendor_name("Tim's Hardware") == "tims-hardware"

    def test_non_latin_scripts_are_kept(self):
        assert normalize_vendor_name("北京科技有限公司") == "北京科技有限公司"
        assert normalize_vendor_name("ООО Ромашка") == "ооо-ромашка"
        assert normalize_vendor_name("ооо  РОМАШКА.") == "ооо-ромашка"

    def test_distinct_non_latin_names_stay_distinct(self):
        assert normalize_vendor_name("株式会社ABC") != normalize_vendor_name("有限会社ABC")

    def test_unusable_name_raises(self):
        with pytest.raises(ValueError):
            normalize_vendor_name("!!!")
        with pytest.raises(ValueError):
            normalize_vendor_name("")


class TestGetOrCreateVendor:
    """Tests for get_or_create_vendor."""

    def test_creates_then_reuses(self, db_session):
        created = get_or_create_vendor(db_session, " Acme Inc. ")
        db_session.commit()
        reused = get_or_create_vendor(db_session, "ACME INC")

        assert created.id == reused.id
        assert created.name == "Acme Inc."
        assert db_session.query(Vendor).count() == 1


class TestViewRefreshNotifier:
    """Tests for ViewRefreshNotifier."""

    def test_subscribers_receive_each_path(self):
        notifier = ViewRefreshNotifier()
        received: list[str] = []
        notifier.subscribe(received.append)

        notifier.invalidate("/dashboard", "/history")

        assert received == ["/dashboard", "/history"]

    def test_failing_subscriber_does_not_block_others(self):
        notifier = ViewRefreshNotifier()
        received: list[str] = []

        def broken(path: str) -> None:
            raise RuntimeError("cache unavailable")

        notifier.subscribe(broken)
        notifier.subscribe(received.append)

        notifier.invalidate("/dashboard")

        assert received == ["/dashboard"]

    def test_unsubscribe(self):
        notifier = ViewRefreshNotifier()
        received: list[str] = []
        notifier.subscribe(received.append)
        notifier.unsubscribe(received.append)

        notifier.invalidate("/history")

        assert received == []

    def test_invoice_path(self):
        assert invoice_path("abc") == "/invoices/abc"
