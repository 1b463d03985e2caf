"""Topic-balanced quizzes with a local high-score ledger."""
