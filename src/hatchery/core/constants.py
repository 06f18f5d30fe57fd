"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# Slugs
MIN_SLUG_LENGTH = 3
MAX_SLUG_LENGTH = 32
SLUG_COLUMN_LENGTH = 63

# String field lengths
MAX_EMAIL_LENGTH = 255
MAX_WORKSPACE_NAME_LENGTH = 100
MAX_DOMAIN_LENGTH = 255
MAX_IDENTIFIER_LENGTH = 320
MAX_REGION_LENGTH = 64
MAX_RESOURCE_ID_LENGTH = 128

# Verification
VERIFICATION_CODE_LENGTH = 6
MAX_VERIFICATION_ATTEMPTS = 5
CODE_IDENTIFIER_PREFIX = "workspace-creation"
TOKEN_IDENTIFIER_PREFIX = "verified"
PROVISIONING_TOKEN_BYTES = 32
ONE_TIME_TOKEN_BYTES = 32

# Provisioning
DEFAULT_REGION = "aws-us-east-1"
DEFAULT_BOARD_NAME = "Feature Requests"
DEFAULT_BOARD_SLUG = "feature-requests"
DEFAULT_BOARD_DESCRIPTION = "Share and vote on feature ideas"
OWNER_ROLE = "owner"

# Tenant migration payload
STATEMENT_BREAKPOINT = "--> statement-breakpoint"
