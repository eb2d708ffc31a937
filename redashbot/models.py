"""Pydantic models for the subset of the Redash REST API the bot reads."""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

_LOGGER = logging.getLogger(__name__)


class QueryRef(BaseModel):
    id: int
    name: str = ''


class Visualization(BaseModel):
    id: int
    name: str = ''
    query: Optional[QueryRef] = None


class Query(BaseModel):
    id: int
    name: str = ''
    visualizations: List[Visualization] = Field(default_factory=list)

    def find_visualization(self, visualization_id: Union[int, str]) -> Optional[Visualization]:
        wanted = str(visualization_id)
        return next((vis for vis in self.visualizations if str(vis.id) == wanted), None)


class WidgetPosition(BaseModel):
    row: int = 0
    col: int = 0


class WidgetOptions(BaseModel):
    position: WidgetPosition = Field(default_factory=WidgetPosition)


class Widget(BaseModel):
    id: Optional[int] = None
    visualization: Optional[Visualization] = None
    options: WidgetOptions = Field(default_factory=WidgetOptions)

    @property
    def position(self) -> Tuple[int, int]:
        return (self.options.position.row, self.options.position.col)


class Dashboard(BaseModel):
    id: Union[int, str]
    name: str = ''
    widgets: List[Widget] = Field(default_factory=list)

    def renderable_widgets(self) -> List[Widget]:
        """Widgets holding a visualization, in layout order (row, then col)."""
        # sorted() is stable, so widgets sharing a cell keep their API order
        ordered = sorted(self.widgets, key=lambda w: w.position)
        renderable = []
        for widget in ordered:
            if widget.visualization is None:
                continue
            if widget.visualization.query is None:
                _LOGGER.debug(
                    "Skipping widget %s on dashboard %s: visualization %s has no embedded query",
                    widget.id, self.id, widget.visualization.id,
                )
                continue
            renderable.append(widget)
        return renderable


class ResultColumn(BaseModel):
    name: str
    friendly_name: Optional[str] = None
    type: Optional[str] = None

    @property
    def label(self) -> str:
        return self.friendly_name or self.name


class QueryResult(BaseModel):
    columns: List[ResultColumn] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class InviteResult(BaseModel):
    invite_link: Optional[str] = None
