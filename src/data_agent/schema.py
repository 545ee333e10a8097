"""
Schema descriptor — renders a data-source schema into the documentation
text that classification, ranking and generation prompts embed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

BUNDLED_SCHEMA = Path(__file__).parent / "schemas" / "supply_chain.json"
RULE = "=" * 80


class ColumnReference(BaseModel):
    table: str
    column: str


class ColumnStatistics(BaseModel):
    min: Optional[Any] = None
    max: Optional[Any] = None
    distinct: Optional[int] = None


class Column(BaseModel):
    name: str
    type: str
    nullable: bool = True
    description: Optional[str] = None
    isPrimaryKey: bool = False
    isForeignKey: bool = False
    references: Optional[ColumnReference] = None
    sampleValues: list[Any] = Field(default_factory=list)
    statistics: Optional[ColumnStatistics] = None


class Table(BaseModel):
    name: str
    fullName: Optional[str] = None
    description: str = ""
    rowCount: Optional[int] = None
    columns: list[Column] = Field(default_factory=list)


class Relationship(BaseModel):
    from_: str = Field(alias="from")
    to: str
    type: str = ""
    keys: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class DataSourceSchema(BaseModel):
    database: str
    schema_: str = Field(alias="schema")
    description: str = ""
    tables: list[Table] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


def load_schema(path: Optional[Union[str, Path]] = None) -> DataSourceSchema:
    """Load a schema definition; the bundled one when no path is given."""
    raw = Path(path or BUNDLED_SCHEMA).read_text(encoding="utf-8")
    return DataSourceSchema.model_validate(json.loads(raw))


def _column_line(column: Column) -> str:
    line = f"  - {column.name}: {column.type}"
    if column.isPrimaryKey:
        line += " (PRIMARY KEY)"
    if column.isForeignKey and column.references:
        line += f" (FK -> {column.references.table}.{column.references.column})"
    if not column.nullable:
        line += " NOT NULL"
    if column.description:
        line += f" - {column.description}"
    return line


def render_documentation(schema: DataSourceSchema) -> str:
    """Full schema documentation: tables, columns, keys, samples, relationships."""
    parts: list[str] = [
        f"Database: {schema.database}",
        f"Schema: {schema.schema_}",
        f"Description: {schema.description}",
        "",
        RULE,
        "",
    ]

    for table in schema.tables:
        lines = [
            f"TABLE: {table.fullName or table.name}",
            f"Description: {table.description}",
        ]
        if table.rowCount is not None:
            lines.append(f"Row Count: ~{table.rowCount:,}")
        lines += ["", "Columns:"]

        for column in table.columns:
            lines.append(_column_line(column))
            if column.sampleValues:
                lines.append(f"    Sample values: [{', '.join(str(v) for v in column.sampleValues)}]")
            stats = column.statistics
            if stats:
                if stats.min is not None and stats.max is not None:
                    lines.append(f"    Range: {stats.min} to {stats.max}")
                if stats.distinct is not None:
                    lines.append(f"    Distinct values: {stats.distinct:,}")

        lines.append("")
        parts.append("\n".join(lines))

    parts += [RULE, "", "TABLE RELATIONSHIPS:", ""]
    for rel in schema.relationships:
        parts.append(f"{rel.from_} -> {rel.to} ({rel.type}): {' = '.join(rel.keys)}")

    return "\n".join(parts)


def render_concise(schema: DataSourceSchema) -> str:
    """One line per table, for prompts where the full document is too long."""
    lines = [f"Database: {schema.schema_}", ""]
    for table in schema.tables:
        columns = []
        for column in table.columns:
            desc = f"{column.name}:{column.type}"
            if column.isPrimaryKey:
                desc += "(PK)"
            if column.isForeignKey:
                desc += "(FK)"
            columns.append(desc)
        lines.append(f"{table.name}: {', '.join(columns)}")
    return "\n".join(lines)
