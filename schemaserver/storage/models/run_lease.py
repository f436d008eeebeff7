"""
Named lease locks shared by every process using the database.
"""

from datetime import datetime

from sqlmodel import Field, SQLModel


class RunLease(SQLModel, table=True):
    __tablename__ = "run_leases"

    key: str = Field(primary_key=True, max_length=100)
    token: str = Field(max_length=64, description="Owner token handed out on acquire")
    expires_at: datetime = Field(index=True)
