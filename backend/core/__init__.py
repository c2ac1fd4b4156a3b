"""Core mathematics and configuration for the slip EV journal.

This package contains pure building blocks:

- ``odds_math``    — implied probability, clamping, two-way de-vig
- ``leg_resolver`` — raw leg inputs → one probability with provenance
- ``slip_math``    — independent-leg combination, EV / RTP, settlement
- ``calibration``  — summary stats, Brier score, binning, segment filters
- ``slip_config``  — leg counts, bin edges, report windows

Nothing in this package imports from ``backend.services`` or ``backend.models``.
All modules are side-effect-free and unit-testable in isolation.
"""
