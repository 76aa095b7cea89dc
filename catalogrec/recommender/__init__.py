"""Recommendation core for CatalogRec.

This module contains the feature vector builder, the user activity store,
preference analysis, the vector cache, campaign discount resolution and the
recommendation engine that ties them together over a document store.
"""
