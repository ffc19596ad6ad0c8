"""
Floor plan layout for an event. Only used to draw the SVG view; booth status
always comes from the booths table.
"""

from sqlalchemy import Column, Integer, String, Boolean, JSON, ForeignKey

from boothhub.db.base import Base, TimestampMixin


class FloorPlan(Base, TimestampMixin):
    __tablename__ = "floor_plans"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    # {grid_width, grid_height, cell_size, zones: [{name, x, y, width, height, color}]}
    layout_data = Column(JSON, nullable=False)
    image_url = Column(String(500), nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<FloorPlan(id={self.id}, event={self.event_id}, name={self.name})>"
