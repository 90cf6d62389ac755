from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[str] = mapped_column(String(40), nullable=False)  # "CS 1101"
    academic_year: Mapped[int] = mapped_column(Integer, nullable=False)
    subject_code: Mapped[str] = mapped_column(String(20), nullable=False)
    course_number: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    credits_min: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credits_max: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attributes: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)  # {"axle": [...], "core": [...]}
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_catalog_course: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("course_id", "academic_year", name="uq_courses_course_id_year"),
        CheckConstraint("credits_min <= credits_max", name="ck_courses_credit_range"),
        Index("ix_courses_subject_code", "subject_code"),
    )


class ClassOffering(Base):
    __tablename__ = "classes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    class_id: Mapped[str] = mapped_column(String(60), nullable=False, unique=True)
    course_id: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    term_code: Mapped[str] = mapped_column(String(20), nullable=False)
    subject_code: Mapped[str] = mapped_column(String(20), nullable=False)
    course_number: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    credits_min: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credits_max: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attributes: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    __table_args__ = (Index("ix_classes_term_code", "term_code"),)


class Program(Base):
    __tablename__ = "programs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    program_id: Mapped[str] = mapped_column(String(120), nullable=False)
    academic_year: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # major | minor | certificate | core
    total_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    requirements: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (UniqueConstraint("program_id", "academic_year", name="uq_programs_program_id_year"),)


class Plan(Base):
    __tablename__ = "plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_year: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    planned_courses = relationship(
        "PlannedCourse",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by=lambda: [PlannedCourse.semester_number, PlannedCourse.position],
    )
    plan_programs = relationship(
        "PlanProgram",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="PlanProgram.id",
    )


class PlannedCourse(Base):
    __tablename__ = "planned_courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[int] = mapped_column(Integer, ForeignKey("plans.id", ondelete="CASCADE"), nullable=False)
    catalog_course_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("courses.id"), nullable=True)
    class_offering_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("classes.id"), nullable=True)
    course_code: Mapped[str] = mapped_column(String(60), nullable=False)
    semester_number: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (Index("ix_planned_courses_plan_order", "plan_id", "semester_number", "position"),)

    plan = relationship("Plan", back_populates="planned_courses")
    course = relationship("Course")
    class_offering = relationship("ClassOffering")
    fulfillments = relationship("RequirementFulfillment", back_populates="planned_course", cascade="all, delete-orphan")


class PlanProgram(Base):
    __tablename__ = "plan_programs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[int] = mapped_column(Integer, ForeignKey("plans.id", ondelete="CASCADE"), nullable=False)
    program_id: Mapped[int] = mapped_column(Integer, ForeignKey("programs.id"), nullable=False)

    __table_args__ = (UniqueConstraint("plan_id", "program_id", name="uq_plan_programs_plan_program"),)

    plan = relationship("Plan", back_populates="plan_programs")
    program = relationship("Program")
    fulfillments = relationship("RequirementFulfillment", back_populates="plan_program", cascade="all, delete-orphan")


class RequirementFulfillment(Base):
    __tablename__ = "requirement_fulfillments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_program_id: Mapped[int] = mapped_column(Integer, ForeignKey("plan_programs.id", ondelete="CASCADE"), nullable=False)
    requirement_id: Mapped[str] = mapped_column(String(255), nullable=False)  # "sectionId.requirementId"
    planned_course_id: Mapped[int] = mapped_column(Integer, ForeignKey("planned_courses.id", ondelete="CASCADE"), nullable=False)
    credits_applied: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "plan_program_id",
            "requirement_id",
            "planned_course_id",
            name="uq_requirement_fulfillments_assignment",
        ),
        Index("ix_requirement_fulfillments_plan_program_id", "plan_program_id"),
    )

    plan_program = relationship("PlanProgram", back_populates="fulfillments")
    planned_course = relationship("PlannedCourse", back_populates="fulfillments")
