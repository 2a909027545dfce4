"""shopqa - QA scenarios for the e-commerce /api/v2 HTTP API.

Drives the admin and shop surfaces of the platform through dependent
HTTP calls and asserts business invariants after each step.

This package provides:
- Bearer-token HTTP clients for the admin and shop roles
- Collision-free test data payloads
- The checkout flow orchestrator and its invariant checks
- Best-effort cleanup of created entities
- A concurrent scenario runner with per-scenario timeout budgets

Scenario families:
1. accounts - customer creation, login, admin smoke checks
2. cart - add, modify and remove line items
3. checkout - address, shipping, payment and completion
4. catalog - product, variant, stock and shipment lifecycle
5. stock - oversell prevention and stock decrement
6. pricing - subtotal identity, totals, currency, quantity validation
7. security - ownership, role and token boundaries
8. lifecycle - idempotent deletion
"""

__version__ = "0.1.0"
