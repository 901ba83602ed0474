"""civicops: entity resolution and correlation graph pipeline."""
