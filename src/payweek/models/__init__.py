"""Import every table module so SQLModel.metadata knows all mappers."""
from payweek.models.registry import Employee, Contractor, Project, DailyWageHistory  # noqa: F401
from payweek.models.payroll import (  # noqa: F401
    PayrollWeek, Attendance, CashAdvance, ContractorCertification, FundRequest,
)
