"""
Data Export Script

Exports the entire dataset to JSON for backup.
Usage: python -m skillswap.scripts.data_export --output backup.json.gz
"""
import asyncio
import json
import gzip
import argparse
from datetime import datetime, timezone
from pathlib import Path
from sqlalchemy import text

from skillswap.database import Database


TABLES_TO_EXPORT = [
    "users",
    "skills",
    "swap_requests",
    "swap_sessions",
    "sessions",
    "resources",
    "messages",
    "reviews",
]

# Never written to backups
EXCLUDED_COLUMNS = {"users": {"password_hash"}}


async def export_table(session, table_name: str) -> list:
    """
    Export all records from a table.

    Args:
        session: Open AsyncSession
        table_name: Name of table to export

    Returns:
        list: All records as dictionaries
    """
    query = text(f"SELECT * FROM {table_name} ORDER BY id")
    result = await session.execute(query)

    columns = list(result.keys())
    skip = EXCLUDED_COLUMNS.get(table_name, set())
    records = []
    for row in result.fetchall():
        record = {}
        for col, val in zip(columns, row):
            if col in skip:
                continue
            # Convert non-JSON-serializable types
            if isinstance(val, datetime):
                record[col] = val.isoformat()
            else:
                record[col] = val
        records.append(record)

    return records


async def build_export(session) -> dict:
    """Export package with metadata for every table"""
    data = {}
    total_records = 0

    for table in TABLES_TO_EXPORT:
        records = await export_table(session, table)
        data[table] = records
        total_records += len(records)

    return {
        "metadata": {
            "export_time": datetime.now(timezone.utc).isoformat(),
            "version": "1.0",
            "tables": TABLES_TO_EXPORT,
            "total_records": total_records
        },
        "data": data
    }


async def export_all_data(output_file: str, compress: bool = True):
    """
    Export all data to a JSON file.

    Args:
        output_file: Path to output file
        compress: Whether to gzip when the path ends in .gz (default True)
    """
    print(f"Starting data export to {output_file}...")

    database = Database()
    try:
        async with database.transaction() as session:
            export_data = await build_export(session)
    finally:
        await database.dispose()

    for table, records in export_data["data"].items():
        print(f"Exported {table}: {len(records)} records")

    json_str = json.dumps(export_data, indent=2, default=str)

    if compress and output_file.endswith(".gz"):
        with gzip.open(output_file, 'wt', encoding='utf-8') as f:
            f.write(json_str)
        print(f"\n✓ Export complete: {output_file} (compressed)")
    else:
        with open(output_file, 'w') as f:
            f.write(json_str)
        print(f"\n✓ Export complete: {output_file}")

    # Show file size
    file_size = Path(output_file).stat().st_size / (1024 * 1024)  # MB
    print(f"  File size: {file_size:.2f} MB")
    print(f"  Total records: {export_data['metadata']['total_records']}")


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Export SkillSwap database to JSON")
    parser.add_argument(
        "--output",
        "-o",
        default="skillswap_backup.json.gz",
        help="Output file path (default: skillswap_backup.json.gz)"
    )
    parser.add_argument(
        "--no-compress",
        action="store_true",
        help="Disable gzip compression"
    )

    args = parser.parse_args()

    asyncio.run(export_all_data(args.output, compress=not args.no_compress))


if __name__ == "__main__":
    main()
