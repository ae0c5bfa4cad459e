"""Restaurant deal feed composition and geo-ranking."""
