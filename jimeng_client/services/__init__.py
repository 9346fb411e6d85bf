"""Client services.

Each call follows the async task pattern:
  sign request → POST submit → poll result → extract artifacts
"""
from __future__ import annotations
