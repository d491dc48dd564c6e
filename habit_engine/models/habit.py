import datetime as dt
from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, new_id


class Habit(Base):
    __tablename__ = "habits"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True)

    title: Mapped[str] = mapped_column(String(50))
    emoji: Mapped[str] = mapped_column(String(16), default="✅")
    color: Mapped[str] = mapped_column(String(32), default="pink")
    # Display order, not unique per user
    order: Mapped[int] = mapped_column(Integer, default=1)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=lambda: dt.datetime.utcnow())

    completions = relationship("HabitCompletion", back_populates="habit", cascade="all, delete-orphan")


class HabitCompletion(Base):
    __tablename__ = "habit_completions"
    __table_args__ = (
        Index("ix_habit_completions_user_date", "user_id", "date"),
        Index("ix_habit_completions_habit_date", "habit_id", "date"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    habit_id: Mapped[str] = mapped_column(ForeignKey("habits.id", ondelete="CASCADE"))
    # Denormalized from the habit so range queries skip the join
    user_id: Mapped[str] = mapped_column(String(64))
    date: Mapped[dt.date] = mapped_column(Date)

    completed_at: Mapped[dt.datetime] = mapped_column(DateTime, default=lambda: dt.datetime.utcnow())

    habit = relationship("Habit", back_populates="completions")
