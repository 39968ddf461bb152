"""Service layer: sessions, account email delivery, bot checks and seeding."""
