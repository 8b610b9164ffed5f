# Service layer for the ticket simulation monitor
# - ticket_client: async HTTP client for the remote ticket service
# - poller:        fixed-interval status and log pollers
# - dispatcher:    validated operator commands with optimistic run state
