"""
RatingSync.

Keeps each restaurant's rating aggregate (count and average) consistent
with its current reviews by recomputing it on every review change.
"""
