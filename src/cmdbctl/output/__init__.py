"""Rendering of ServiceResult for humans (Rich) and machines (JSON)."""
