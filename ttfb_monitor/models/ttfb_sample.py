from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from ttfb_monitor.lib.database import Base


class TtfbSample(Base):
  """One slow page load reported by a visitor's browser.

  Rows are immutable once inserted. `recorded_at` is naive UTC with second
  precision; `query_params` and `cookies` hold list-codec text or NULL.
  """

  __tablename__ = 'ttfb_samples'

  id = Column(Integer, primary_key=True, autoincrement=True)
  recorded_at = Column(DateTime, nullable=False)
  ttfb_ms = Column(Integer, nullable=False)
  category = Column(String(20), nullable=False)
  url = Column(Text, nullable=False)
  query_params = Column(Text, nullable=True)
  cookies = Column(Text, nullable=True)
  user_role = Column(String(100), nullable=False, default='')
  country = Column(String(10), nullable=False, default='')
  device_type = Column(String(20), nullable=False, default='')
  browser = Column(String(100), nullable=False, default='')
  referrer = Column(Text, nullable=True)

  __table_args__ = (
    Index('ix_ttfb_samples_recorded_at', 'recorded_at'),
    Index('ix_ttfb_samples_category', 'category'),
    Index('ix_ttfb_samples_ttfb_ms', 'ttfb_ms'),
  )

  def __repr__(self) -> str:
    return f'<TtfbSample id={self.id} ttfb_ms={self.ttfb_ms} category={self.category!r}>'
