import os

# Must be set before the app is imported so the module-level engine is harmless
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("CRON_SECRET", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lms_backend.core.database import Base, get_db
from lms_backend.core.security import create_access_token, hash_password
from lms_backend.main import app
from lms_backend.models.enums import UserRole
from lms_backend.models.user_model import User
from lms_backend.models.course_model import Course, Chapter, Quiz, Question
from lms_backend.models.payment_model import Purchase
from lms_backend.models.enums import PurchaseStatus, QuestionType
from lms_backend.services import session_manager

TEST_PASSWORD = "secret123"


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role=UserRole.USER, full_name=None, phone_number=None, email=None, password=TEST_PASSWORD):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            full_name=full_name or f"{role.value.title()} {n}",
            phone_number=phone_number or f"0100000{n:04d}",
            email=email or f"{role.value.lower()}{n}@example.com",
            college="Engineering",
            faculty="Computer Science",
            hashed_password=hash_password(password),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


def auth_headers_for(db, user):
    session_id = session_manager.create_session(db, user)
    token = create_access_token(user_id=user.id, session_id=session_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def login_as(db):
    def _login(user):
        return auth_headers_for(db, user)

    return _login


@pytest.fixture
def student(make_user):
    return make_user(UserRole.USER)


@pytest.fixture
def teacher(make_user):
    return make_user(UserRole.TEACHER)


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def student_headers(db, student):
    return auth_headers_for(db, student)


@pytest.fixture
def teacher_headers(db, teacher):
    return auth_headers_for(db, teacher)


@pytest.fixture
def admin_headers(db, admin):
    return auth_headers_for(db, admin)


@pytest.fixture
def make_course(db):
    def _make_course(owner, title="Algorithms", price=500.0, is_free=False, is_published=True, chapters=1):
        course = Course(
            user_id=owner.id,
            title=title,
            description="Sorting and searching",
            image_url="https://cdn.example.com/cover.png",
            price=price,
            is_free=is_free,
            is_published=is_published,
        )
        db.add(course)
        db.flush()
        for position in range(1, chapters + 1):
            db.add(Chapter(course_id=course.id, title=f"Chapter {position}", position=position, is_published=True))
        db.commit()
        db.refresh(course)
        return course

    return _make_course


@pytest.fixture
def course(make_course, teacher):
    return make_course(teacher)


@pytest.fixture
def make_purchase(db):
    def _make_purchase(user, course, course_price=None, status=PurchaseStatus.ACTIVE):
        purchase = Purchase(
            user_id=user.id,
            course_id=course.id,
            course_price=course_price if course_price is not None else course.price,
            status=status,
        )
        db.add(purchase)
        db.commit()
        db.refresh(purchase)
        return purchase

    return _make_purchase


@pytest.fixture
def quiz(db, course):
    quiz = Quiz(course_id=course.id, title="Week 1 quiz", position=10, is_published=True, max_attempts=2)
    quiz.questions = [
        Question(text="2 + 2?", type=QuestionType.MULTIPLE_CHOICE, options=["3", "4", "5"],
                 correct_answer="4", points=2, position=1),
        Question(text="Python is typed dynamically", type=QuestionType.TRUE_FALSE,
                 correct_answer="true", points=1, position=2),
        Question(text="Name the sort with O(n log n) worst case", type=QuestionType.SHORT_ANSWER,
                 correct_answer="Merge sort", points=1, position=3),
    ]
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    return quiz
