"""
Client Python minimal: connexion puis promotion d'un étudiant via l'API.
Prérequis : pip install requests
Usage :
  python client_example.py --host http://127.0.0.1:8000 --user admin@university.edu --password secret \
      --student 1 --to-level 2 --year 2024-2025
"""

import argparse
import json

import requests


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="http://127.0.0.1:8000")
    parser.add_argument("--user", required=True, help="Email ou code étudiant")
    parser.add_argument("--password", required=True)
    parser.add_argument("--student", type=int, required=True)
    parser.add_argument("--to-level", type=int, required=True)
    parser.add_argument("--year", required=True, help="Année académique, ex: 2024-2025")
    parser.add_argument("--reason", default="")
    parser.add_argument("--filiere", default=None, help="Filière cible (transfert BAC+3 -> BAC+5)")
    parser.add_argument("--check-only", action="store_true", help="Afficher l'éligibilité sans promouvoir")
    args = parser.parse_args()

    session = requests.Session()
    login = session.post(f"{args.host}/api/auth/login/", json={"identifier": args.user, "password": args.password})
    login.raise_for_status()
    identity = login.json()
    session.headers["Authorization"] = f"Bearer {identity['token']}"
    print(f"Connecté: {identity['display_name']} ({identity['role']})")

    eligibility = session.get(f"{args.host}/api/students/{args.student}/eligibility/")
    if eligibility.status_code != 200:
        print(f"Erreur {eligibility.status_code}: {eligibility.json().get('error')}")
        return
    report = eligibility.json()
    print(json.dumps(report, indent=2, ensure_ascii=False))
    if args.check_only:
        return

    resp = session.post(
        f"{args.host}/api/students/promote/",
        json={
            "student_id": args.student,
            "to_level": args.to_level,
            "academic_year": args.year,
            "promoted_by": identity["display_name"],
            "promotion_reason": args.reason,
            "filiere": args.filiere,
        },
    )
    payload = resp.json()
    if resp.status_code == 200:
        print(f"Promotion effectuée: {payload['from_level']} -> {payload['to_level']} ({payload['outcome']})")
    else:
        print(f"Promotion refusée ({resp.status_code}): {payload.get('error')}")
        for module in payload.get("modules", []):
            print(f"  - {module.get('code', '?')}: {module.get('reason')} ({module.get('module_grade')})")


if __name__ == "__main__":
    main()
