"""CRM module -- contacts, notes and deals with owner-scoped access.

Provides SQLAlchemy models (ContactModel, NoteModel, DealModel), Pydantic
schemas with the camelCase REST contract, the OwnershipGuard, and the
async repositories used by the API layer.
"""
