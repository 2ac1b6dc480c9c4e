"""
scheme.py — Government support schemes shown in the mobile app.

Read-only here; the collection is maintained outside the API.
"""

from pydantic import BaseModel


class GovSchemeOut(BaseModel):
    id: str
    title: str
    description: str
    eligibility: str       # who can apply, one short paragraph
    official_link: str
    category: str          # e.g. "Housing", "Financial Aid", "Fisheries"
