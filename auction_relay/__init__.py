"""Live auction relay: ledger reconciliation and push fan-out."""
