"""
News Module
===========

Everything that touches articles:
- Upstream news provider client and the per-category cache in front of it
- Balanced, paginated reads over the seeded JSON corpus
- Recommendation and search service clients
- Read-only news service used by the API and the notification job
"""
