"""Mogu ERP natural-language agent backend."""
