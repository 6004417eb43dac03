"""
Bakery Core Primitives — Reusable Building Blocks
===================================================
Primitives are the shared, engine-agnostic building blocks that
all fulfillment engines consume. They are:

- Pure Python (no Django dependency)
- Immutable where they describe state (frozen dataclasses)
- Deterministic (same input → same output)

Primitives:
    fulfillment — fulfillment types, channels, payment methods, statuses
    money       — Decimal currency rounding (half-up, two places)
    locks       — per-key lock registry with bounded waits
    workflow    — state machine definitions and transition records
"""
