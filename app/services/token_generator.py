# app/services/token_generator.py
"""Pass token generation: one random UUID4 per invitation, never reused."""

import uuid


def generate_pass_token() -> str:
    return str(uuid.uuid4())
