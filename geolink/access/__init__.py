"""Access-request lifecycle: review, provisioning, revocation, reconciliation."""
