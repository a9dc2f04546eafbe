"""Tool dispatch: validation, handle injection, failure classification."""
