"""Services: transport binding and session refresh orchestration."""
