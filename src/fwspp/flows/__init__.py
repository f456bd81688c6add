"""
Prefect flows for the occurrence pipeline.

Flows:
- occurrences: query every repository for each property, reconcile, link
  to ITIS and export one table per property

Usage (local):
    python -m fwspp.flows.occurrences "OKEFENOKEE NATIONAL WILDLIFE REFUGE"
    fwspp occ "OKEFENOKEE NATIONAL WILDLIFE REFUGE" --scrub moderate

Usage (Prefect):
    prefect server start  # Optional, for dashboard
    fwspp occ "OKEFENOKEE NATIONAL WILDLIFE REFUGE"
"""
