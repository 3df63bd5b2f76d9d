"""Servicios del Core: versión deseada y reconciliación."""
