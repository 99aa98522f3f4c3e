"""Report lifecycle state.

This package is the single source of truth for where each submitted
report is in its lifecycle.  States live in a transactional store and
change only through compare-and-swap transitions.
"""
