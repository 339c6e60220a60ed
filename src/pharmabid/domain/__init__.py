"""Domain layer: marketplace model, ports and services."""
