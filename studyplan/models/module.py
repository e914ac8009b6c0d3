from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from studyplan.database import Base
from studyplan.models.enums import LearnStatus

class CourseModule(Base):
    """Module of a course, studied in Phase 1"""
    __tablename__ = "course_modules"
    
    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=False)
    order = Column(Integer, nullable=False, default=0)
    
    progress = relationship("ModuleProgress", back_populates="module")

class ModuleProgress(Base):
    """Whether a student has finished learning a module"""
    __tablename__ = "module_progress"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    course_id = Column(Integer, nullable=False)
    module_id = Column(Integer, ForeignKey("course_modules.id"), nullable=False)
    learn_status = Column(Enum(LearnStatus), nullable=False, default=LearnStatus.NOT_STARTED)
    last_learned_at = Column(DateTime)
    
    module = relationship("CourseModule", back_populates="progress")
    
    __table_args__ = (
        UniqueConstraint("user_id", "module_id", name="uq_user_module_progress"),
    )
