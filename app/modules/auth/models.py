# Supabase Auth
# This module uses Supabase's built-in authentication system.
# No custom tables are required - Supabase Auth handles:
# - User registration (auth.users table)
# - Password and magic-link sign in
# - Password reset emails
# - JWT token generation and validation

"""
Supabase Auth calls used by AuthService:
- auth.sign_up() - Register new users (full_name / company stored in user_metadata)
- auth.sign_in_with_password() - Authenticate users
- auth.sign_in_with_otp() - Email a magic login link
- auth.reset_password_for_email() - Email a password reset link
- auth.get_user() - Resolve the user behind a bearer token
- auth.sign_out() - Logout users

Every other table in this service is keyed by auth.users.id (user_id column).
"""
