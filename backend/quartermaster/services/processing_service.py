"""Processing station ledgers: daily records, weekly tracking, monthly rollups.

Unsold product carries into the next calendar day: a day's ``carried_over``
is the previous day's stored ``remaining``. A day with no record holds no
stock, so nothing carries across it. Carried stock adds to what is on hand
but is not counted as that day's revenue.

Daily, weekly and monthly views all read the stored figures, so a day looks
the same in every view.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from quartermaster.core.config import settings
from quartermaster.core.exceptions import NotFoundError, ValidationFailedError
from quartermaster.models.processing import (
    ProcessingInput,
    ProcessingOutput,
    ProcessingRecord,
    QualityGrade,
    StationType,
)
from quartermaster.models.unit import Unit
from quartermaster.schemas.processing import ProcessingDailyUpsert
from quartermaster.services.ledger import to_decimal
from quartermaster.services.processing_stations import (
    STATIONS,
    InputLine,
    OutputLine,
    PeriodTotals,
    ProductTotals,
    StationConfig,
    StationDay,
    compute_station_day,
    day_name_vi,
    get_station,
    month_bounds,
    previous_months,
    week_dates,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
DEFAULT_MONTH_COUNT = 6


class ProcessingService:
    def __init__(self, db: Session):
        self.db = db

    def stations(self) -> List[StationConfig]:
        return list(STATIONS.values())

    # ===== DAILY =====

    def get_daily(self, station_type: StationType, day: date, unit_id: int) -> Dict[str, Any]:
        """Stored day, or a zero day with default prices and projected carry-over."""
        config = get_station(station_type)
        self._require_unit(unit_id)
        record = self.find(station_type, day, unit_id)
        if record is not None:
            return self._view_from_record(config, record)
        carried = self._remaining_on(station_type, day - timedelta(days=1), unit_id)
        return self._empty_view(config, day, unit_id, carried)

    def upsert_daily(
        self,
        station_type: StationType,
        day: date,
        unit_id: int,
        data: ProcessingDailyUpsert,
        user_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        config = get_station(station_type)
        self._require_unit(unit_id)
        self._validate_lines(config, data)

        record = self.find(station_type, day, unit_id)
        created = record is None
        if created:
            record = ProcessingRecord(
                station_type=config.station_type.value,
                date=day,
                unit_id=unit_id,
                created_by=user_id,
            )
            self.db.add(record)

        carried = self._remaining_on(station_type, day - timedelta(days=1), unit_id)
        self._merge_lines(config, record, data, carried)
        record.other_costs = data.other_costs
        record.notes = data.notes
        record.quality_notes = data.quality_notes
        record.supervised_by = data.supervised_by
        record.processed_by = user_id
        record.updated_by = user_id
        apply_station_day(record)
        self.db.flush()

        self.propagate_carry_over(record)

        self.db.commit()
        self.db.refresh(record)
        logger.info(
            f"{'Created' if created else 'Updated'} {config.station_type.value} record "
            f"{day} unit={unit_id}: profit={record.profit}"
        )
        return self._view_from_record(config, record)

    def propagate_carry_over(self, record: ProcessingRecord) -> bool:
        """Refresh the next day's carried-over product from ``record``'s remaining."""
        next_day = record.date + timedelta(days=1)
        try:
            with self.db.begin_nested():
                next_record = self.find(StationType(record.station_type), next_day, record.unit_id)
                if next_record is None:
                    return False
                remaining = {line.product: line.remaining for line in record.outputs}
                for line in next_record.outputs:
                    line.carried_over = to_decimal(remaining.get(line.product))
                apply_station_day(next_record)
                self.db.flush()
            return True
        except Exception as e:
            logger.warning(
                f"Carry-over of {record.station_type} from {record.date} to {next_day} "
                f"for unit {record.unit_id} failed: {e}"
            )
            return False

    def find(self, station_type: StationType, day: date, unit_id: int) -> Optional[ProcessingRecord]:
        return (
            self.db.query(ProcessingRecord)
            .filter(
                ProcessingRecord.station_type == StationType(station_type).value,
                ProcessingRecord.date == day,
                ProcessingRecord.unit_id == unit_id,
            )
            .first()
        )

    # ===== WEEKLY / MONTHLY =====

    def weekly_tracking(
        self, station_type: StationType, week: int, year: int, unit_id: int
    ) -> Dict[str, Any]:
        if not 1 <= week <= 53 or not self._year_ok(year):
            raise ValidationFailedError(
                f"Week phải từ 1-53, year phải từ "
                f"{settings.processing_year_min}-{settings.processing_year_max}"
            )
        config = get_station(station_type)
        self._require_unit(unit_id)

        dates = week_dates(week, year)
        records = {
            r.date: r
            for r in self._records_between(station_type, unit_id, dates[0], dates[-1])
        }

        totals = PeriodTotals()
        for product in config.products:
            totals.products[product.code] = ProductTotals()
        days = []
        for day in dates:
            record = records.get(day)
            if record is not None:
                view = self._view_from_record(config, record)
                _accumulate(totals, record)
            else:
                carried = self._remaining_on(station_type, day - timedelta(days=1), unit_id)
                view = self._empty_view(config, day, unit_id, carried)
            days.append(view)

        for out in days[-1]["outputs"]:
            totals.products.setdefault(out["product"], ProductTotals()).remaining = out["remaining"]

        return {
            "station_type": config.station_type.value,
            "week": week,
            "year": year,
            "unit_id": unit_id,
            "start_date": dates[0],
            "end_date": dates[-1],
            "days": days,
            "totals": _totals_dict(totals),
        }

    def monthly_summary(
        self,
        station_type: StationType,
        month: int,
        year: int,
        unit_id: int,
        month_count: Optional[int] = None,
    ) -> Dict[str, Any]:
        if not 1 <= month <= 12 or not self._year_ok(year):
            raise ValidationFailedError(
                f"Month phải từ 1-12, year phải từ "
                f"{settings.processing_year_min}-{settings.processing_year_max}"
            )
        config = get_station(station_type)
        self._require_unit(unit_id)
        month_count = max(1, min(12, month_count or DEFAULT_MONTH_COUNT))

        overall = PeriodTotals()
        rows = []
        for y, m in previous_months(year, month, month_count):
            first, last = month_bounds(y, m)
            totals = PeriodTotals()
            for product in config.products:
                totals.products[product.code] = ProductTotals()
            closing: Dict[str, Decimal] = {}
            for record in self._records_between(station_type, unit_id, first, last):
                _accumulate(totals, record)
                _accumulate(overall, record)
                closing = {line.product: to_decimal(line.remaining) for line in record.outputs}
            for product, remaining in closing.items():
                totals.products.setdefault(product, ProductTotals()).remaining = remaining
            row = _totals_dict(totals)
            row.update({"month": m, "year": y, "label": f"{m:02d}/{y}"})
            rows.append(row)

        return {
            "station_type": config.station_type.value,
            "unit_id": unit_id,
            "months": rows,
            "totals": _totals_dict(overall),
        }

    # ===== HELPERS =====

    def _require_unit(self, unit_id: int) -> Unit:
        unit = self.db.query(Unit).filter(Unit.id == unit_id).first()
        if unit is None:
            raise NotFoundError("Không tìm thấy đơn vị")
        return unit

    @staticmethod
    def _year_ok(year: int) -> bool:
        return settings.processing_year_min <= year <= settings.processing_year_max

    def _records_between(
        self, station_type: StationType, unit_id: int, start: date, end: date
    ) -> List[ProcessingRecord]:
        return (
            self.db.query(ProcessingRecord)
            .filter(
                ProcessingRecord.station_type == StationType(station_type).value,
                ProcessingRecord.unit_id == unit_id,
                ProcessingRecord.date >= start,
                ProcessingRecord.date <= end,
            )
            .order_by(ProcessingRecord.date)
            .all()
        )

    def _remaining_on(self, station_type: StationType, day: date, unit_id: int) -> Dict[str, Decimal]:
        record = self.find(station_type, day, unit_id)
        if record is None:
            return {}
        return {line.product: to_decimal(line.remaining) for line in record.outputs}

    @staticmethod
    def _validate_lines(config: StationConfig, data: ProcessingDailyUpsert) -> None:
        materials = [line.material for line in data.inputs]
        products = [line.product for line in data.outputs]
        for code in materials:
            if config.material(code) is None:
                raise ValidationFailedError(f"Nguyên liệu không hợp lệ: {code}")
        for code in products:
            if config.product(code) is None:
                raise ValidationFailedError(f"Sản phẩm không hợp lệ: {code}")
        if len(set(materials)) != len(materials) or len(set(products)) != len(products):
            raise ValidationFailedError("Dữ liệu bị trùng lặp nguyên liệu hoặc sản phẩm")

    @staticmethod
    def _merge_lines(
        config: StationConfig,
        record: ProcessingRecord,
        data: ProcessingDailyUpsert,
        carried: Dict[str, Decimal],
    ) -> None:
        """Ensure one line per configured material and product, applying the payload."""
        inputs = {line.material: line for line in data.inputs}
        existing_inputs = {line.material: line for line in record.inputs}
        for position, spec in enumerate(config.materials):
            line = existing_inputs.get(spec.code)
            if line is None:
                line = ProcessingInput(
                    material=spec.code,
                    quantity=ZERO,
                    price=spec.default_price,
                    quality=QualityGrade.GOOD.value,
                    carry_over_from_previous_day=ZERO,
                )
                record.inputs.append(line)
            line.position = position
            payload = inputs.get(spec.code)
            if payload is not None:
                line.quantity = payload.quantity
                if payload.price is not None:
                    line.price = payload.price
                line.quality = payload.quality.value
                line.carry_over_from_previous_day = payload.carry_over_from_previous_day

        outputs = {line.product: line for line in data.outputs}
        existing_outputs = {line.product: line for line in record.outputs}
        for position, spec in enumerate(config.products):
            line = existing_outputs.get(spec.code)
            if line is None:
                line = ProcessingOutput(
                    product=spec.code,
                    produced=ZERO,
                    actual_output=ZERO,
                    price_per_unit=spec.default_price,
                    quality=QualityGrade.GOOD.value,
                )
                record.outputs.append(line)
            line.position = position
            line.carried_over = carried.get(spec.code, ZERO)
            payload = outputs.get(spec.code)
            if payload is not None:
                line.produced = payload.produced
                line.actual_output = payload.actual_output
                if payload.price_per_unit is not None:
                    line.price_per_unit = payload.price_per_unit
                line.quality = payload.quality.value

    def _view_from_record(self, config: StationConfig, record: ProcessingRecord) -> Dict[str, Any]:
        outputs = list(record.outputs)
        output_lines = [
            OutputLine(
                product=line.product,
                produced=to_decimal(line.produced),
                actual_output=to_decimal(line.actual_output),
                price_per_unit=to_decimal(line.price_per_unit),
                carried_over=to_decimal(line.carried_over),
            )
            for line in outputs
        ]
        day = compute_station_day(
            _input_lines(record), output_lines, to_decimal(record.other_costs)
        )
        return {
            "id": record.id,
            "station_type": config.station_type.value,
            "date": record.date,
            "day_name": day_name_vi(record.date),
            "unit_id": record.unit_id,
            "is_recorded": True,
            "inputs": [
                {
                    "material": line.material,
                    "quantity": line.quantity,
                    "price": line.price,
                    "cost": to_decimal(line.quantity) * to_decimal(line.price),
                    "quality": line.quality,
                    "carry_over_from_previous_day": line.carry_over_from_previous_day,
                }
                for line in record.inputs
            ],
            "outputs": [
                _output_view(line, balance, stored.quality)
                for line, balance, stored in zip(output_lines, day.outputs, outputs)
            ],
            "other_costs": record.other_costs,
            "notes": record.notes,
            "quality_notes": record.quality_notes,
            "processed_by": record.processed_by,
            "supervised_by": record.supervised_by,
            "financial": _financial(day),
            "updated_at": record.updated_at,
        }

    @staticmethod
    def _empty_view(
        config: StationConfig, day: date, unit_id: int, carried: Dict[str, Decimal]
    ) -> Dict[str, Any]:
        output_lines = [
            OutputLine(
                product=spec.code,
                produced=ZERO,
                actual_output=ZERO,
                price_per_unit=spec.default_price,
                carried_over=carried.get(spec.code, ZERO),
            )
            for spec in config.products
        ]
        station_day = compute_station_day([], output_lines)
        return {
            "id": None,
            "station_type": config.station_type.value,
            "date": day,
            "day_name": day_name_vi(day),
            "unit_id": unit_id,
            "is_recorded": False,
            "inputs": [
                {
                    "material": spec.code,
                    "quantity": ZERO,
                    "price": spec.default_price,
                    "cost": ZERO,
                    "quality": QualityGrade.GOOD.value,
                    "carry_over_from_previous_day": ZERO,
                }
                for spec in config.materials
            ],
            "outputs": [
                _output_view(line, balance, QualityGrade.GOOD.value)
                for line, balance in zip(output_lines, station_day.outputs)
            ],
            "other_costs": ZERO,
            "financial": _financial(station_day),
        }


def apply_station_day(record: ProcessingRecord) -> ProcessingRecord:
    """Recompute a record's balances and financial block from its lines."""
    outputs = list(record.outputs)
    day = compute_station_day(
        _input_lines(record),
        [
            OutputLine(
                product=line.product,
                produced=to_decimal(line.produced),
                actual_output=to_decimal(line.actual_output),
                price_per_unit=to_decimal(line.price_per_unit),
                carried_over=to_decimal(line.carried_over),
            )
            for line in outputs
        ],
        to_decimal(record.other_costs),
    )
    for line, balance in zip(outputs, day.outputs):
        line.collected = balance.collected
        line.remaining = balance.remaining
    record.total_input_cost = day.total_input_cost
    record.total_output_value = day.total_output_value
    record.profit = day.profit
    record.profit_margin = day.profit_margin
    return record


def _input_lines(record: ProcessingRecord) -> List[InputLine]:
    return [
        InputLine(
            material=line.material,
            quantity=to_decimal(line.quantity),
            price=to_decimal(line.price),
        )
        for line in record.inputs
    ]


def _output_view(line: OutputLine, balance, quality: str) -> Dict[str, Any]:
    return {
        "product": line.product,
        "produced": line.produced,
        "carried_over": balance.carried_over,
        "collected": balance.collected,
        "actual_output": line.actual_output,
        "remaining": balance.remaining,
        "price_per_unit": line.price_per_unit,
        "value": balance.value,
        "quality": quality,
    }


def _financial(day: StationDay) -> Dict[str, Decimal]:
    return {
        "total_input_cost": day.total_input_cost,
        "total_output_value": day.total_output_value,
        "profit": day.profit,
        "profit_margin": day.profit_margin,
    }


def _accumulate(totals: PeriodTotals, record: ProcessingRecord) -> None:
    """Add one recorded day's stored figures to a period accumulator."""
    totals.days_recorded += 1
    totals.input_quantity += sum((to_decimal(line.quantity) for line in record.inputs), ZERO)
    totals.total_input_cost += to_decimal(record.total_input_cost)
    totals.total_output_value += to_decimal(record.total_output_value)
    totals.profit += to_decimal(record.profit)
    for line in record.outputs:
        product = totals.products.setdefault(line.product, ProductTotals())
        product.produced += to_decimal(line.produced)
        product.actual_output += to_decimal(line.actual_output)
        product.value += to_decimal(line.produced) * to_decimal(line.price_per_unit)


def _totals_dict(totals: PeriodTotals) -> Dict[str, Any]:
    return {
        "products": {
            code: {
                "produced": p.produced,
                "actual_output": p.actual_output,
                "value": p.value,
                "remaining": p.remaining,
            }
            for code, p in totals.products.items()
        },
        "input_quantity": totals.input_quantity,
        "total_input_cost": totals.total_input_cost,
        "total_output_value": totals.total_output_value,
        "profit": totals.profit,
        "profit_margin": totals.profit_margin,
        "days_recorded": totals.days_recorded,
    }
