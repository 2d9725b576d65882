from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

Base = declarative_base()


class Project(Base):
    """Модель проекта в БД."""
    __tablename__ = 'projects'

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    owner_id = Column(Integer, nullable=True)  # Telegram id создателя
    created_at = Column(DateTime, default=datetime.now)

    activities = relationship("Activity", back_populates="project", cascade="all, delete-orphan",
                              order_by="Activity.id")

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}')>"


class Activity(Base):
    """Модель работы PERT в БД."""
    __tablename__ = 'activities'
    # Удаленные id не переиспользуются
    __table_args__ = {'sqlite_autoincrement': True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey('projects.id'), nullable=False)
    name = Column(String, nullable=False, default="")
    optimistic = Column(Float, nullable=False, default=0.0)
    most_likely = Column(Float, nullable=False, default=0.0)
    pessimistic = Column(Float, nullable=False, default=0.0)
    mean = Column(Float, nullable=False, default=0.0)
    variance = Column(Float, nullable=False, default=0.0)

    project = relationship("Project", back_populates="activities")
    predecessors = relationship("ActivityPredecessor", back_populates="activity",
                                cascade="all, delete-orphan", order_by="ActivityPredecessor.id")

    def __repr__(self):
        return f"<Activity(id={self.id}, name='{self.name}', mean={self.mean})>"


class ActivityPredecessor(Base):
    """Ссылка на предшественника по названию работы."""
    __tablename__ = 'activity_predecessors'

    id = Column(Integer, primary_key=True)
    activity_id = Column(Integer, ForeignKey('activities.id'), nullable=False)
    predecessor_name = Column(String, nullable=False)

    activity = relationship("Activity", back_populates="predecessors")

    def __repr__(self):
        return f"<ActivityPredecessor(activity_id={self.activity_id}, predecessor_name='{self.predecessor_name}')>"
