"""
Book Review API.

- User signup and login with bcrypt-hashed passwords
- Short-lived JWT access tokens and cookie-held refresh tokens
- Book catalogue browsing, search and creation
- One review per user per book, editable by its author
"""
