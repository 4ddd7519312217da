"""
Data models for RatingSync.

- Review: a single rated review belonging to one restaurant
- ChangeNotification: before/after snapshot pair for one review mutation
- Aggregate: derived (count, average) summary stored per restaurant
"""
