import pytest

from frame_orders.config import VendorKey
from frame_orders.detection import (
    MessageEnvelope,
    Tier,
    VendorDetector,
    detect_vendor,
    forwarded_senders,
)
from tests.conftest import read_fixture


@pytest.fixture
def detector():
    return VendorDetector()


class TestDomainTier:
    def test_sender_on_vendor_domain(self, detector):
        found = detector.detect(MessageEnvelope(sender="Orders <orders@mysafilo.com>", body="anything"))
        assert found.vendor_key is VendorKey.SAFILO
        assert found.tier is Tier.DOMAIN
        assert found.confidence == 95

    def test_subdomain_counts(self, detector):
        found = detector.detect(MessageEnvelope(sender="noreply@mail.europaeye.com"))
        assert found.vendor_key is VendorKey.EUROPA

    def test_lookalike_domain_does_not(self, detector):
        found = detector.detect(MessageEnvelope(sender="x@notsafilo.com", body="hello"))
        assert found.vendor_key is VendorKey.UNKNOWN


class TestSignatureTier:
    def test_forwarded_sender_beats_personal_envelope(self, detector):
        body = (
            "---------- Forwarded message ---------\n"
            "From: Marchon Orders <orders@marchon.com>\n"
            "Subject: Your order\n\n"
            "Thanks!"
        )
        found = detector.detect(MessageEnvelope(sender="owner@gmail.com", body=body))
        assert found.vendor_key is VendorKey.MARCHON
        assert found.tier is Tier.SIGNATURE
        assert found.confidence == 90

    def test_forwarded_headers_field(self, detector):
        found = detector.detect(MessageEnvelope(
            sender="owner@gmail.com",
            forwarded_headers="Reply-To: service@kenmarkeyewear.com",
            body="see below",
        ))
        assert found.vendor_key is VendorKey.KENMARK

    def test_personal_domains_are_ignored(self):
        text = "From: Someone <me@gmail.com>\n> From: rep@lamyamerica.com"
        assert forwarded_senders(text) == ["lamyamerica.com"]

    @pytest.mark.parametrize("fixture,vendor", [
        ("safilo_order.txt", VendorKey.SAFILO),
        ("luxottica_order.html", VendorKey.LUXOTTICA),
        ("kenmark_order.html", VendorKey.KENMARK),
        ("modern_order.html", VendorKey.MODERN),
        ("europa_order.html", VendorKey.EUROPA),
        ("etnia_order.txt", VendorKey.ETNIA),
        ("ideal_order.html", VendorKey.IDEAL),
        ("marchon_order.html", VendorKey.MARCHON),
    ])
    def test_body_signatures(self, detector, fixture, vendor):
        found = detector.detect(MessageEnvelope(sender="owner@gmail.com", body=read_fixture(fixture)))
        assert found.vendor_key is vendor
        assert found.tier is Tier.SIGNATURE
        assert found.confidence == 85


class TestKeywordTier:
    def test_two_keywords_are_enough(self, detector):
        found = detector.detect(MessageEnvelope(
            subject="Luxottica order confirmation",
            body="please review",
        ))
        assert found.vendor_key is VendorKey.LUXOTTICA
        assert found.tier is Tier.KEYWORD
        assert found.confidence == 65

    def test_one_keyword_is_not(self, detector):
        found = detector.detect(MessageEnvelope(subject="safilo", body="hi"))
        assert found.vendor_key is VendorKey.UNKNOWN


class TestUnknown:
    def test_nothing_recognisable(self):
        found = detect_vendor(MessageEnvelope(sender="friend@example.org", subject="lunch?", body="tacos"))
        assert found.vendor_key is VendorKey.UNKNOWN
        assert found.tier is Tier.UNKNOWN
        assert found.confidence == 0
        assert not found.known

    def test_threshold_can_reject_keyword_matches(self):
        strict = VendorDetector(threshold=80)
        found = strict.detect(MessageEnvelope(subject="Luxottica order confirmation"))
        assert found.vendor_key is VendorKey.UNKNOWN


class TestDeepMarkup:
    DEPTH = 1500

    def _nested(self, inner: str) -> str:
        return "<html><body>" + "<div>" * self.DEPTH + inner + "</div>" * self.DEPTH + "</body></html>"

    def test_deeply_nested_body_is_still_read(self, detector):
        found = detector.detect(MessageEnvelope(body=self._nested("Questions? Contact your Europa Sales Representative")))
        assert found.vendor_key is VendorKey.EUROPA
        assert found.tier is Tier.SIGNATURE

    def test_deeply_nested_noise_is_unknown(self, detector):
        found = detector.detect(MessageEnvelope(body=self._nested("Lunch on Friday?")))
        assert found.vendor_key is VendorKey.UNKNOWN
