"""Models — enums and pydantic schemas shared by every layer."""
