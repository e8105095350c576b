"""
Operational scripts for the Nexus Admin API.

Modules:
- bootstrap: Seed default services and the default admin user
- tv_maintenance: TV slot pool maintenance (reset, passwords, account batches)
"""
