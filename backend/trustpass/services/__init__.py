"""Domain services: status classification, notifications and scheduling."""
