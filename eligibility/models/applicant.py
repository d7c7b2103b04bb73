from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey

from .base import Base, new_id


class University(Base):
    __tablename__ = "universities"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    country = Column(String)
    city = Column(String)
    global_rank = Column(Integer)


class Student(Base):
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String)
    highest_qualification = Column(String)  # phd/masters/bachelors/diploma
    tenth_percentage = Column(Float)
    twelfth_percentage = Column(Float)
    bachelors_percentage = Column(Float)
    bachelors_cgpa = Column(Float)
    pin_code_tier = Column(String)  # tier1/tier2/tier3
    created_at = Column(DateTime, default=datetime.utcnow)


class StudentTest(Base):
    __tablename__ = "student_tests"

    id = Column(String(36), primary_key=True, default=new_id)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    test_type = Column(String, nullable=False)  # ielts/toefl/pte/gre/gmat
    score = Column(Float, nullable=False)


class CoApplicant(Base):
    __tablename__ = "co_applicants"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String)
    relationship = Column(String)
    employment_type = Column(String)  # salaried/government/self_employed/...
    monthly_salary = Column(Float)
    salary = Column(Float)  # annual
    employment_duration_years = Column(Float)
