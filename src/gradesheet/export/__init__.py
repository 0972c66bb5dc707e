from .csv_export import (
    _safe_str,
    export_extraction,
    export_groups_csv,
    export_records_csv,
    export_statistics_json,
    export_tables_csv,
)
