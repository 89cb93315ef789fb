"""Components of the epoch-based staking-reward engine."""
