"""Tests for the prefixed snowflake id generator."""

import pytest

from src.mp_common.id_generator import (
    BID_PREFIX,
    TRANSACTION_PREFIX,
    SnowflakeIdGenerator,
    generate_id,
)


def test_ids_are_unique_and_increasing() -> None:
    gen = SnowflakeIdGenerator(machine_id=1)
    ids = [gen.next_int() for _ in range(2000)]
    assert len(set(ids)) == len(ids)
    assert ids == sorted(ids)


def test_prefix_is_applied() -> None:
    assert generate_id(BID_PREFIX).startswith("bid_")
    assert generate_id(TRANSACTION_PREFIX).startswith("txn_")


def test_machine_id_bounds() -> None:
    with pytest.raises(ValueError):
        SnowflakeIdGenerator(machine_id=1024)
