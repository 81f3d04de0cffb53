"""
Built-in business actions available to the intent router.

Register new capabilities here with ``@catalog.action(...)``.  The
description is what gets embedded and matched against user questions,
so phrase it the way a user would ask.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from agentic_rag.vector_logic.intent_router import ActionCatalog


class Employee(BaseModel):
    id: int
    name: str
    position: str
    hire_date: date
    salary: float


_EMPLOYEES: list[Employee] = [
    Employee(id=1, name="Alice Johnson", position="Software Engineer", hire_date=date(2020, 1, 15), salary=90000),
    Employee(id=2, name="Bob Smith", position="Product Manager", hire_date=date(2019, 3, 22), salary=105000),
    Employee(id=3, name="Charlie Brown", position="Designer", hire_date=date(2021, 7, 30), salary=75000),
]


class EmployeeLookup(BaseModel):
    name: str = Field(description="Full or partial employee name")


def build_default_catalog() -> ActionCatalog:
    """Catalog with every built-in action registered."""
    catalog = ActionCatalog()

    @catalog.action(
        "employees.list_all",
        "Returns all the employees in the system with their id, name, position, hire date and salary",
    )
    def list_employees() -> list[dict]:
        return [e.model_dump(mode="json") for e in _EMPLOYEES]

    @catalog.action(
        "employees.find_by_name",
        "Finds an employee by name and returns their position, hire date and salary",
        params_model=EmployeeLookup,
    )
    def find_employee(name: str) -> list[dict]:
        needle = name.strip().lower()
        return [e.model_dump(mode="json") for e in _EMPLOYEES if needle in e.name.lower()]

    return catalog
