"""Pure domain core: ledger rule, events, authorization, clock."""
