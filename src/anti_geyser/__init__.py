"""Anti-Geyser: epoch-based staking rewards that favour long-tenured, low-churn stakers."""
