"""mapgood — map-exploration client core."""
