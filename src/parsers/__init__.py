"""IaC parsers: docker-compose and Helm."""
