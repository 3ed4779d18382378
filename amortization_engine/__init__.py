"""
Bond Amortization Engine

Modules:
- bonds: parameter record, schedule/indicator/compliance value types
- rates: nominal/effective and periodicity conversions
- schedule: French-method payment schedule with grace periods
- solver: Newton-Raphson / Brent internal-rate solver
- risk: Macaulay/modified duration and convexity
- compliance: regulatory bounds rule table
- engine: evaluate() orchestrator returning Ok/Err results
- portfolio: batch evaluation + summary frames
- scenarios: annual rate shock runner
- corporate: inflation-indexed corporate bond valuation
- config: engine constants, solver settings, YAML loading
- utils: due dates + discounting helpers

Callers should import from the submodules.
"""
