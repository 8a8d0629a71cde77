"""Domain layer: data model, ports and normalization rules."""
