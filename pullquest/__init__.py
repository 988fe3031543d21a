"""Pull Quest login front end."""
