"""ASGI app serving the practice ledger API over the Supabase store."""

from practice_ledger.api.app import create_app
from practice_ledger.containers import build_container

app = create_app(build_container())
