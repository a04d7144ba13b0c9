"""
Payroll Modules.

Thin orchestration layers over the payroll kernel and engines.
Each module contains:
- Domain models (the nouns)
- ORM persistence companions
- Workflows (state machines)
- A service facade that owns the transaction boundary

Modules:
- Compensation: unified monthly payroll computation and its lifecycle
"""
