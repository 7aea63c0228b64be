"""Command line entrypoints (`mcs-conformance-run`, `mcs-conformance-report`)."""
