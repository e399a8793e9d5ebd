'''
Media Plan Finance Backend Test Suite

Test Modules:
-------------
- test_parsing.py: Tolerant money / date / burst payload parsing
- test_config.py: Fee configuration validation and Settings
- test_deliverables.py: Deliverables per buy type
- test_fee_policy.py: Fee split formulas, billing bursts, totals
- test_proration.py: Day-weighted monthly allocation
- test_grouping.py: Grouping keys, sums and date widening
- test_timeline.py: Date grid and span layout with drops
- test_export.py: Export sections and DataFrames
- test_accrual.py: Month normalization, schedule flattening, reconciliation
- test_billing_schedule.py: Billing months, stored schedule, overrides
- test_expected_spend.py: Expected spend to date
- test_cache.py: Reference data cache
- test_orchestration.py: Debounced recompute coordinator
- test_api.py: Router contracts through TestClient

Running Tests:
--------------
    pip install -e ".[test]"
    pytest mediaplan/tests -v
'''

__all__ = []
