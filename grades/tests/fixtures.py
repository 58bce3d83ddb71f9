from academics.identity import ADMINISTRATOR, PROFESSOR, SessionIdentity, issue_token
from academics.models import Administrator, Filiere, Grade, GradeHistory, Module, Professor, Student, level_label


def make_filiere(code="IISI3", degree="BAC+3", levels=(1, 2, 3), name="IISI", formation="Ingénierie"):
    return Filiere.objects.create(code=code, name=name, formation=formation, degree=degree, levels=list(levels))


def make_student(filiere, code="STU001", level=1, semester="Semester 1", **extra):
    defaults = {
        "first_name": extra.pop("first_name", "Jane"),
        "last_name": extra.pop("last_name", code),
        "email": extra.pop("email", f"{code.lower()}@supmti.ma"),
    }
    return Student.objects.create(student_id=code, filiere=filiere, level=level, semester=semester, **defaults, **extra)


def make_module(filiere, code, level=1, semester="Semester 1", cc=30, exam=70, **extra):
    return Module.objects.create(
        code=code,
        name=extra.pop("name", f"Module {code}"),
        filiere=filiere,
        academic_level=level_label(level),
        semester=semester,
        cc_percentage=cc,
        exam_percentage=exam,
        **extra,
    )


def grade(student, module, cc=None, exam=None, year="2024-2025"):
    return Grade.objects.create(student=student, module=module, cc_grade=cc, exam_grade=exam, academic_year=year)


def history(student, module, cc=None, exam=None, year="2023-2024"):
    return GradeHistory.objects.create(student=student, module=module, cc_grade=cc, exam_grade=exam, academic_year=year)


def admin_token():
    admin = Administrator.objects.create(
        first_name="John", last_name="Smith", email="admin@university.edu", password_hash="!"
    )
    return issue_token(SessionIdentity(id=admin.pk, role=ADMINISTRATOR, display_name="John Smith"))


def professor_token():
    professor = Professor.objects.create(
        professor_id="PROF-001",
        first_name="Emily",
        last_name="Johnson",
        email="prof.johnson@university.edu",
        password_hash="!",
    )
    return issue_token(SessionIdentity(id=professor.pk, role=PROFESSOR, display_name="Emily Johnson"))
