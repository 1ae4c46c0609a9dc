"""User ids shared by test fixtures."""

OWNER_ID = "owner-1"
ADMIN_ID = "admin-2"
REQUESTER_ID = "user-3"
