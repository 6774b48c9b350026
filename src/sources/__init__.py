"""Source acquisition: fetch IaC files into a project source directory."""
