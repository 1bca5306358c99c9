"""Analytics module -- per-user rollups of deals by stage and by month.

Provides the pure ``build_snapshot`` function and AnalyticsAggregator,
which caches one snapshot per user and recomputes it in the background.
"""
