"""Server-side error pipeline. Import concrete classes from their modules."""
