"""Prompts for authentication analysis and autofill."""

AUTH_ANALYSIS_INSTRUCTION = """Inspect the current page for authentication state.

Key questions to answer:
1. Does the user need to sign in? (requiresAuth: true/false)
2. If yes, what button/link should they click to start login? (loginButton: describe the action, e.g., "Click the Sign In button")
3. Can credentials be auto-filled? (canAutofill: true/false)
4. What's the recommended authentication strategy? (recommendedStrategy: "autofill", "manual", "passwordless", or "unknown")
5. Are there any blockers like MFA or SSO? (blockers: array of issues)

Return a complete analysis following the schema."""

# Placeholder names resolved by browser-use's sensitive_data; the model never sees the values
USERNAME_SECRET = "x_username"
PASSWORD_SECRET = "x_password"

TYPE_USERNAME_ACTION = f"Type <secret>{USERNAME_SECRET}</secret> into the username or email field"
TYPE_PASSWORD_ACTION = f"Type <secret>{PASSWORD_SECRET}</secret> into the password field"
SUBMIT_LOGIN_ACTION = "Click the login or sign in button"
