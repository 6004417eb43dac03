"""
Tests for core.numbering — order number format and issuance.
"""

import random
import threading

import pytest
from datetime import datetime, timezone, timedelta

from core.numbering import (
    OrderNumberExhausted,
    RandomOrderNumberProvider,
    date_stamp,
    format_order_number,
)

ISSUED_AT = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)


# ── Format Tests ─────────────────────────────────────────────

class TestFormatOrderNumber:
    def test_format(self):
        number = format_order_number(
            prefix="PCP", source="web", issued_at=ISSUED_AT, suffix=427,
        )
        assert number == "PCP-WEB-20261019-0427"

    def test_channel_codes(self):
        assert "-PHN-" in format_order_number(
            prefix="PCP", source="phone", issued_at=ISSUED_AT, suffix=1,
        )
        assert "-POS-" in format_order_number(
            prefix="PCP", source="pos", issued_at=ISSUED_AT, suffix=1,
        )

    def test_unknown_source(self):
        with pytest.raises(ValueError, match="channel code"):
            format_order_number(prefix="PCP", source="fax", issued_at=ISSUED_AT, suffix=1)

    def test_suffix_out_of_range(self):
        with pytest.raises(ValueError, match="suffix"):
            format_order_number(prefix="PCP", source="web", issued_at=ISSUED_AT, suffix=10000)

    def test_date_stamp_uses_utc(self):
        late_evening = datetime(2026, 10, 19, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert date_stamp(late_evening) == "20261020"


# ── Provider Tests ───────────────────────────────────────────

class TestRandomOrderNumberProvider:
    def test_seeded_provider_is_repeatable(self):
        a = RandomOrderNumberProvider(rng=random.Random(7))
        b = RandomOrderNumberProvider(rng=random.Random(7))
        assert a.next_number(source="web", issued_at=ISSUED_AT) == \
            b.next_number(source="web", issued_at=ISSUED_AT)

    def test_prefix(self):
        provider = RandomOrderNumberProvider(prefix="SWT")
        assert provider.next_number(source="pos", issued_at=ISSUED_AT).startswith("SWT-POS-")

    def test_skips_numbers_that_exist(self):
        taken = set()
        seed_provider = RandomOrderNumberProvider(rng=random.Random(1))
        taken.add(seed_provider.next_number(source="web", issued_at=ISSUED_AT))

        provider = RandomOrderNumberProvider(rng=random.Random(1), exists=taken.__contains__)
        number = provider.next_number(source="web", issued_at=ISSUED_AT)
        assert number not in taken

    def test_exhaustion(self):
        provider = RandomOrderNumberProvider(exists=lambda _: True, max_attempts=3)
        with pytest.raises(OrderNumberExhausted):
            provider.next_number(source="web", issued_at=ISSUED_AT)

    def test_concurrent_issuance_is_unique(self):
        provider = RandomOrderNumberProvider()
        issued = []
        issued_lock = threading.Lock()

        def worker():
            for _ in range(50):
                number = provider.next_number(source="web", issued_at=ISSUED_AT)
                with issued_lock:
                    issued.append(number)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(issued) == 400
        assert len(set(issued)) == 400

    def test_issued_set_only_covers_current_day(self):
        provider = RandomOrderNumberProvider(rng=random.Random(3))
        for _ in range(20):
            provider.next_number(source="web", issued_at=ISSUED_AT)
        assert provider.issued_count == 20

        next_day = ISSUED_AT + timedelta(days=1)
        number = provider.next_number(source="web", issued_at=next_day)
        assert provider.issued_count == 1
        assert f"-{next_day.strftime('%Y%m%d')}-" in number
