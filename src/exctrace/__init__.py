"""exctrace: archival trace records for exceptional VM execution paths.

Records each external transaction together with the tree of internal calls it
triggered, classifies every frame's outcome into a closed exception taxonomy,
and detaches oversized trace bodies into blob storage.
"""

__version__ = "0.1.0"
