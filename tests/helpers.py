def auth(user_id, role, name=None):
    headers = {"X-User-Id": user_id, "X-User-Role": role}
    if name:
        headers["X-User-Name"] = name
    return headers


ADMIN = auth("admin-1", "ADMIN", "Principal Kim")
TEACHER = auth("teacher-1", "TEACHER", "Ms. Lee")
OTHER_TEACHER = auth("teacher-2", "TEACHER", "Mr. Park")
STUDENT_A = auth("student-a", "STUDENT", "Alice")
STUDENT_B = auth("student-b", "STUDENT", "Bob")
STUDENT_C = auth("student-c", "STUDENT", "Chloe")
