from __future__ import annotations

from mcs_conformance.framework.signals import (
    NON_CONFORMANCE_CHANNEL,
    SPEC_REF_CHANNEL,
    NonConformanceSignal,
    NonConformant,
    ReportEntry,
    spec_ref_entry,
)


def test_signal_entry_uses_non_conformance_channel() -> None:
    entry = NonConformanceSignal("type mismatch").to_entry()
    assert entry == ReportEntry(channel=NON_CONFORMANCE_CHANNEL, value="type mismatch")
    assert entry.channel == "non-conformance"


def test_spec_ref_entry() -> None:
    entry = spec_ref_entry("https://example.test/kep#dns")
    assert entry.channel == SPEC_REF_CHANNEL == "spec-ref"
    assert ReportEntry.from_dict(entry.to_dict()) == entry


def test_non_conformant_materializes_static_and_deferred_messages() -> None:
    assert NonConformant("static").materialize() == NonConformanceSignal("static")
    assert NonConformant(lambda: "deferred").materialize() == NonConformanceSignal("deferred")
    assert NonConformant().materialize() == NonConformanceSignal("")
    assert repr(NonConformant(lambda: "x")) == "NonConformant(<deferred>)"
