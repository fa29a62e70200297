"""Release orchestration and OTP collection."""
