# src/stagecraft/core/sample_data.py
"""In-memory sample dataset that every source stage reads during a preview.

Stands in for the rows a real SQL query or CSV upload would return.
Callers must copy before mutating; the engine hands sources a deep copy.
"""

from collections.abc import Sequence

from stagecraft.contracts import Row

SAMPLE_SALES: Sequence[Row] = (
    {"customer": "CloudCo", "region": "West", "amount": 850, "status": "won"},
    {"customer": "DataNation", "region": "North", "amount": 240, "status": "new"},
    {"customer": "Insight LLC", "region": "West", "amount": 600, "status": "lost"},
    {"customer": "WideWorld Importers", "region": "East", "amount": 920, "status": "won"},
    {"customer": "Blue Yonder", "region": "South", "amount": 460, "status": "new"},
)
