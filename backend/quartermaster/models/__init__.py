"""SQLAlchemy models."""

from quartermaster.models.item import (
    LttpItem,
    ItemCategory,
    UnitOfMeasure,
    StorageTemperature,
    StorageHumidity,
)
from quartermaster.models.unit import Unit
from quartermaster.models.inventory import (
    DailyInventoryRecord,
    InventoryOutputLine,
    InventoryAlert,
    FreshnessStatus,
    QualityCondition,
    OutputPurpose,
    AlertType,
    AlertSeverity,
)
from quartermaster.models.distribution import (
    DistributionAllocation,
    DistributionSlot,
    DistributionIssue,
    AllocationStatus,
    SlotStatus,
    IssueType,
    BudgetPeriod,
)
from quartermaster.models.processing import (
    ProcessingRecord,
    ProcessingInput,
    ProcessingOutput,
    StationType,
    QualityGrade,
)
from quartermaster.models.supply import SupplyIntake, SupplyStatus
