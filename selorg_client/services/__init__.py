"""Services module - API transport, OTP login and session wiring."""
