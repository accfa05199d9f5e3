"""
Snapshot Data Validation

Rule-based quality checks run on catalog and order snapshot DataFrames
before they are handed to the analytics engine.

Column names in exports vary between the portal's snake_case and legacy
camelCase conventions, so every check accepts a list of column aliases and
uses the first one present.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
import json

import polars as pl
import structlog

logger = structlog.get_logger(__name__)

Columns = Union[str, Sequence[str]]

LINE_ITEM_COLUMNS = ["line_items", "items"]


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Snapshot is rejected
    WARNING = "warning"  # Logged, snapshot still used
    INFO = "info"


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None


def _aliases(columns: Columns) -> List[str]:
    return [columns] if isinstance(columns, str) else list(columns)


def _first_present(df: pl.DataFrame, columns: Columns) -> Optional[str]:
    for name in _aliases(columns):
        if name in df.columns:
            return name
    return None


def _has_line_items(value: Any) -> bool:
    """True for a non-empty list of items, given as a list or JSON text"""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return False
    return isinstance(value, list) and len(value) > 0


def every_order_has_items(df: pl.DataFrame) -> bool:
    """Each order with a line items value decodes to at least one item"""
    column = _first_present(df, LINE_ITEM_COLUMNS)
    if column is None:
        return True
    return all(_has_line_items(value) for value in df[column].drop_nulls().to_list())


class DataValidator:
    """
    Snapshot validator with a chainable check suite.

    Example:
        validator = (
            DataValidator()
            .add_any_not_null_check(["custom_id", "customId", "id"])
            .add_range_check(["price", "unit_price"], min_value=0)
        )
        result = validator.validate(df)
    """

    def __init__(self):
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []

    def _missing(
        self,
        name: str,
        columns: Columns,
        severity: ValidationSeverity,
        required: bool,
    ) -> ValidationCheck:
        """Result for a check whose column is absent"""
        label = "/".join(_aliases(columns))
        if required:
            return ValidationCheck(
                name=name, passed=False, severity=severity,
                message=f"Column '{label}' not found",
            )
        return ValidationCheck(
            name=name, passed=True, severity=ValidationSeverity.INFO,
            message=f"Column '{label}' absent, check skipped",
        )

    def add_not_null_check(
        self,
        columns: Columns,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
        required: bool = True,
    ) -> "DataValidator":
        """Add check for null values in a column"""
        name = f"not_null_{_aliases(columns)[0]}"

        def check(df: pl.DataFrame) -> ValidationCheck:
            column = _first_present(df, columns)
            if column is None:
                return self._missing(name, columns, severity, required)

            null_count = df[column].null_count()
            total = len(df)
            passed = null_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {null_count} null values" if not passed else f"Column '{column}' has no null values",
                details={"null_count": null_count, "null_percentage": (null_count / total) * 100 if total > 0 else 0},
                failed_rows=null_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_any_not_null_check(
        self,
        columns: Sequence[str],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check that every row has a value in at least one of the columns"""
        name = f"any_not_null_{'_'.join(columns)}"

        def check(df: pl.DataFrame) -> ValidationCheck:
            present = [c for c in columns if c in df.columns]
            if not present:
                return self._missing(name, columns, severity, required=True)

            has_value = pl.any_horizontal(
                [pl.col(c).cast(pl.Utf8).str.strip_chars().str.len_chars() > 0 for c in present]
            ).fill_null(False)
            missing = df.filter(~has_value).height
            total = len(df)
            passed = missing == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"{missing} rows have none of {present}" if not passed else "Every row has an identifier",
                details={"columns": present, "missing_count": missing},
                failed_rows=missing,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_unique_check(
        self,
        columns: Columns,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
        required: bool = True,
    ) -> "DataValidator":
        """Add check for uniqueness of non-null column values"""
        name = f"unique_{_aliases(columns)[0]}"

        def check(df: pl.DataFrame) -> ValidationCheck:
            column = _first_present(df, columns)
            if column is None:
                return self._missing(name, columns, severity, required)

            values = df[column].drop_nulls()
            total = len(values)
            duplicate_count = total - values.n_unique()
            passed = duplicate_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {duplicate_count} duplicate values" if not passed else f"Column '{column}' values are unique",
                details={"duplicate_count": duplicate_count},
                failed_rows=duplicate_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_range_check(
        self,
        columns: Columns,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
        required: bool = True,
    ) -> "DataValidator":
        """Add check for numeric values within a range; non-numeric values are ignored"""
        name = f"range_{_aliases(columns)[0]}"

        def check(df: pl.DataFrame) -> ValidationCheck:
            column = _first_present(df, columns)
            if column is None:
                return self._missing(name, columns, severity, required)

            numeric = pl.col(column).cast(pl.Float64, strict=False)
            conditions = []
            if min_value is not None:
                conditions.append(numeric < min_value)
            if max_value is not None:
                conditions.append(numeric > max_value)

            if not conditions:
                return ValidationCheck(
                    name=name,
                    passed=True,
                    severity=severity,
                    message="No range specified",
                )

            combined = conditions[0]
            for cond in conditions[1:]:
                combined = combined | cond

            out_of_range = df.filter(combined.fill_null(False)).height
            total = len(df)
            passed = out_of_range == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {out_of_range} values outside range [{min_value}, {max_value}]" if not passed else "All values in range",
                details={"min": min_value, "max": max_value, "out_of_range_count": out_of_range},
                failed_rows=out_of_range,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_enum_check(
        self,
        columns: Columns,
        allowed_values: List[str],
        severity: ValidationSeverity = ValidationSeverity.WARNING,
        required: bool = True,
        case_insensitive: bool = True,
    ) -> "DataValidator":
        """Add check for values in an allowed set"""
        name = f"enum_{_aliases(columns)[0]}"
        allowed = [v.upper() for v in allowed_values] if case_insensitive else list(allowed_values)

        def check(df: pl.DataFrame) -> ValidationCheck:
            column = _first_present(df, columns)
            if column is None:
                return self._missing(name, columns, severity, required)

            values = pl.col(column).cast(pl.Utf8).str.strip_chars()
            if case_insensitive:
                values = values.str.to_uppercase()
            invalid = df.filter(~values.is_in(allowed) & pl.col(column).is_not_null()).height
            total = len(df)
            passed = invalid == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {invalid} unrecognized values" if not passed else "All values are recognized",
                details={"allowed_values": allowed, "invalid_count": invalid},
                failed_rows=invalid,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_custom_check(
        self,
        name: str,
        check_func: Callable[[pl.DataFrame], bool],
        message_on_fail: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add custom validation check"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            try:
                passed = bool(check_func(df))
            except Exception as e:
                return ValidationCheck(
                    name=name,
                    passed=False,
                    severity=severity,
                    message=f"Check failed with error: {str(e)}",
                )
            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message="Check passed" if passed else message_on_fail,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on a DataFrame.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.utcnow()
        results = []

        logger.info("Running validation checks", checks=len(self._checks), rows=len(df))

        for check_func in self._checks:
            result = check_func(df)
            results.append(result)

            if not result.passed:
                logger.warning(
                    "Validation failed",
                    check=result.name,
                    message=result.message,
                    severity=result.severity.value,
                )

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        validation_result = ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=datetime.utcnow(),
        )

        logger.info(
            "Validation complete",
            status=status.value,
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )

        return validation_result


# Pre-built validators for snapshot exports
def create_catalog_validator() -> DataValidator:
    """Validator for catalog snapshots"""
    return (
        DataValidator()
        .add_any_not_null_check(["custom_id", "customId", "primary_key", "id", "_id", "secondary_key"])
        .add_range_check(["unit_price", "price"], min_value=0)
        .add_range_check(["stock_quantity", "stock"], min_value=0)
        .add_range_check(
            ["lifetime_sold_count", "sold_count", "soldCount"],
            min_value=0,
            required=False,
        )
        .add_not_null_check("name", severity=ValidationSeverity.WARNING, required=False)
        .add_unique_check(["custom_id", "customId", "primary_key"], severity=ValidationSeverity.WARNING, required=False)
    )


def create_orders_validator() -> DataValidator:
    """Validator for order snapshots"""
    from portal_analytics.analytics.statuses import OrderStatus

    return (
        DataValidator()
        .add_not_null_check(["id", "order_id", "orderId", "_id"])
        .add_unique_check(["id", "order_id", "orderId", "_id"], severity=ValidationSeverity.WARNING)
        .add_not_null_check(["created_at", "createdAt"], severity=ValidationSeverity.WARNING)
        .add_not_null_check(LINE_ITEM_COLUMNS)
        .add_custom_check(
            "line_items_not_empty",
            every_order_has_items,
            "Some orders have no decodable line items",
            severity=ValidationSeverity.WARNING,
        )
        .add_enum_check("status", [s.value for s in OrderStatus if s is not OrderStatus.UNKNOWN], required=False)
        .add_range_check(["total_amount", "totalAmount"], min_value=0, severity=ValidationSeverity.WARNING, required=False)
    )
