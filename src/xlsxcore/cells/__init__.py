"""Cell and range reference conversion."""

from .coordinates import (
    cell_to_coordinates,
    coordinates_to_cell,
    range_to_coordinates,
    coordinates_to_range,
    sort_coordinates,
    split_cell_name,
    join_cell_name,
    column_name_to_number,
    column_number_to_name,
)

__all__ = [
    "cell_to_coordinates",
    "coordinates_to_cell",
    "range_to_coordinates",
    "coordinates_to_range",
    "sort_coordinates",
    "split_cell_name",
    "join_cell_name",
    "column_name_to_number",
    "column_number_to_name",
]
