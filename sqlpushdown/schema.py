"""
Output schema of a compiled query and its mapping to pandas dtypes.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .enums import DataType
from .expressions import AttributeReference

__all__ = ['StructField', 'Schema', 'attributes_from_dataframe']


# Nullable integer/bool extension dtypes keep NULLs coming back from the store
_PANDAS_DTYPES = {
    DataType.boolean: ('bool', 'boolean'),
    DataType.integer: ('int32', 'Int32'),
    DataType.long: ('int64', 'Int64'),
    DataType.double: ('float64', 'float64'),
    DataType.string: ('object', 'object'),
    DataType.date: ('datetime64[ns]', 'datetime64[ns]'),
    DataType.timestamp: ('datetime64[ns]', 'datetime64[ns]'),
}


@dataclass(frozen=True)
class StructField:
    """One column of a schema."""

    name: str
    data_type: Optional[DataType]
    nullable: bool = True

    def pandas_dtype(self) -> Optional[str]:
        """pandas dtype for this column, or None when it should be left as returned."""
        if self.data_type not in _PANDAS_DTYPES:
            return None
        non_null, null = _PANDAS_DTYPES[self.data_type]
        return null if self.nullable else non_null


@dataclass(frozen=True)
class Schema:
    """
    Ordered list of fields describing a result set.

    Example:
        >>> schema = Schema.from_attributes(builder.output)
        >>> schema.names
        ['a', 'total']
    """

    fields: List[StructField] = field(default_factory=list)

    @classmethod
    def from_attributes(cls, attributes: Sequence[AttributeReference]) -> 'Schema':
        return cls([StructField(a.name, a.data_type, a.nullable) for a in attributes])

    @property
    def names(self) -> List[str]:
        return [f.name for f in self.fields]

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self):
        return iter(self.fields)

    def to_pandas_dtypes(self) -> Dict[str, str]:
        """Mapping of column name to pandas dtype, for columns with a known type."""
        dtypes = {}
        for f in self.fields:
            dtype = f.pandas_dtype()
            if dtype is not None:
                dtypes[f.name] = dtype
        return dtypes

    def apply_to(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Conform a result DataFrame to this schema.

        Columns are renamed positionally to the schema's names, then cast to
        the mapped pandas dtypes.
        """
        if len(df.columns) != len(self.fields):
            from .exceptions import ExecutionError

            raise ExecutionError(
                f"Result has {len(df.columns)} columns but the schema expects {len(self.fields)}: {self.names}"
            )
        df = df.copy()
        df.columns = self.names
        dtypes = self.to_pandas_dtypes()
        if dtypes:
            df = df.astype(dtypes)
        return df


def _data_type_of(dtype) -> Optional[DataType]:
    if pd.api.types.is_bool_dtype(dtype):
        return DataType.boolean
    if pd.api.types.is_integer_dtype(dtype):
        return DataType.long
    if pd.api.types.is_float_dtype(dtype):
        return DataType.double
    if pd.api.types.is_datetime64_any_dtype(dtype):
        return DataType.timestamp
    if pd.api.types.is_string_dtype(dtype) or pd.api.types.is_object_dtype(dtype):
        return DataType.string
    return None


def attributes_from_dataframe(df: pd.DataFrame) -> List[AttributeReference]:
    """Infer one attribute per DataFrame column from its dtype and null content."""
    return [
        AttributeReference(str(name), _data_type_of(df[name].dtype), bool(df[name].isna().any()))
        for name in df.columns
    ]
