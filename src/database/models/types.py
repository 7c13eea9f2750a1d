"""Column types shared across models."""

from sqlalchemy import JSON, Numeric
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on Postgres, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Money columns keep sub-cent precision for per-token AI charges
Money = Numeric(12, 6, asdecimal=True)
