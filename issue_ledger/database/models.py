from sqlalchemy import Column, LargeBinary, String
from issue_ledger.database.config import Base


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    key = Column(String, primary_key=True, index=True)
    value = Column(LargeBinary, nullable=False)
