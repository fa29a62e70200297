from __future__ import annotations

# GH / API operations
GH_TIMEOUT_SECONDS = 60.0
GH_UPLOAD_TIMEOUT_SECONDS = 10 * 60.0

# Local git operations (status, rev-parse, checkout, add, commit, tag)
GIT_TIMEOUT_SECONDS = 30.0

# Network-bound git operations (push, fetch)
GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

# npm version / view / publish
NPM_TIMEOUT_SECONDS = 5 * 60.0

# Optic OTP service
OPTIC_HTTP_TIMEOUT_SECONDS = 30.0

# Idempotent GH read retry policy
GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0
