from app.application.quizzes.entities import Role
from app.infrastructure.db.models.user_model import UserModel
from app.infrastructure.db.session import SessionLocal
from app.infrastructure.repositories.user_repo_impl import UserRepositoryImpl


def test_role_column_default_maps_to_student(db_engine):
    db = SessionLocal()
    try:
        model = UserModel(name="Rana", email="rana@school.com", password_hash="x")
        db.add(model)
        db.commit()

        user = UserRepositoryImpl(db).get_by_id(model.id)
        assert user.role == Role.STUDENT
        assert not user.is_admin
    finally:
        db.close()
