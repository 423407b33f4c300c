"""Output layer — Rich rendering of ServiceResult."""
