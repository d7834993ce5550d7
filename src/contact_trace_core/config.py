# -*- coding: utf-8 -*-
"""
Contact Tracing Configuration

Holds the column mapping used to read raw movement records and the options
that control tracing and batch processing.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .exceptions import ValidationError


@dataclass
class TraceConfig:
    """
    Contact Tracing Configuration Class

    Field Mapping Parameters:
        source_column (str): Column holding the location the entities left, default 'source'
        destination_column (str): Column holding the location the entities arrived at, default 'destination'
        time_column (str): Column holding the movement date, default 't'
        id_column (str): Optional entity identifier column, default 'id'
        count_column (str): Optional number of moved entities, default 'n'
        category_column (str): Optional entity category column, default 'category'
        date_format (str): Format used to parse dates given as strings, default '%Y-%m-%d'

    Tracing Parameters:
        exclude_root (bool): Leave the root out of degree, contact chain and shortest
            path counts when a path returns to it, default True. This also drops a
            root -> root self-loop from inDegree/outDegree, where a plain count of
            distinct destinations would include it; set False to count it
        max_distance (Optional[int]): Stop expanding the contact chain at this many
            hops from the root, default None (unlimited)

    Batch Parameters:
        num_processes (int): Number of worker processes for batched queries, default 1
        progress (bool): Show a progress bar for batched queries, default False

    Usage Examples:
        >>> config = TraceConfig(source_column='from_holding',
        ...                      destination_column='to_holding',
        ...                      time_column='date')
        >>> config.column_mapping['source']
        'from_holding'
    """
    source_column: str = 'source'
    destination_column: str = 'destination'
    time_column: str = 't'
    id_column: str = 'id'
    count_column: str = 'n'
    category_column: str = 'category'
    date_format: str = '%Y-%m-%d'
    exclude_root: bool = True
    max_distance: Optional[int] = None
    num_processes: int = 1
    progress: bool = False

    def __post_init__(self):
        if self.max_distance is not None and self.max_distance < 1:
            raise ValidationError(f"max_distance must be at least 1, got {self.max_distance}")
        if self.num_processes < 1:
            raise ValidationError(f"num_processes must be at least 1, got {self.num_processes}")

    @property
    def column_mapping(self) -> Dict[str, str]:
        """Map canonical field names to the column names of the raw input"""
        return {
            'source': self.source_column,
            'destination': self.destination_column,
            't': self.time_column,
            'id': self.id_column,
            'n': self.count_column,
            'category': self.category_column,
        }

    @property
    def required_columns(self) -> Dict[str, str]:
        mapping = self.column_mapping
        return {key: mapping[key] for key in ('source', 'destination', 't')}

    @property
    def optional_columns(self) -> Dict[str, str]:
        mapping = self.column_mapping
        return {key: mapping[key] for key in ('id', 'n', 'category')}
