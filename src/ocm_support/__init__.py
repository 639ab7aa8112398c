"""Support tooling for OCM.

This package exposes the sync of cloud resources into AMS, based on a CSV
file, as well as helpers for querying and presenting clusters of the clusters
management API.
"""
