"""Stable identifiers used by catalog scenarios.

Centralized so tests can reference seeded rows without hardcoding UUIDs.
Fixed IDs also keep snapshots byte-identical between rebuilds.
"""

import uuid

# Roles
ADMIN_ROLE = uuid.UUID("cdfc3a18-5d83-41e8-964f-edb9ef2f71fa")
MEMBER_ROLE = uuid.UUID("5b0f8a3e-2a51-4c4b-9f0e-2f4b1c6d8e73")

# Users
FIRST_USER = uuid.UUID("f6ae8ae5-bdc9-4010-85ca-e7e7e7bfa34c")
SECOND_USER = uuid.UUID("e4551264-284c-422d-9d0d-4871cf10786e")
