import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=".env")

# Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

# Public address used to build invite links
APP_URL = os.getenv("APP_URL", "")

# Invite email delivery (Resend)
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
INVITE_FROM_ADDRESS = os.getenv("INVITE_FROM_ADDRESS", "Livelist <onboarding@resend.dev>")

# Local UX preferences (last selected category per workspace)
PREFERENCES_PATH = os.getenv("LIVELIST_PREFERENCES_PATH", ".cache/livelist_preferences.json")

DEFAULT_WORKSPACE_NAME = "Our Home"
