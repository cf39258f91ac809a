import sys

from db import ExerciseRepository


SAMPLE_EXERCISES = [
    ("Flat Dumbbell Press", 80, 6, "80, 75 lbs | 5–7 reps", "push"),
    ("Incline Dumbbell Press", 70, 6, "70, 65 lbs | 5–7 reps", "push"),
    ("Seated Cable Press", 8, 9, "8,7 down | 8–10 reps", "push"),
    ("Pec Deck", 125, 0, "125 lbs | reps not logged | Seat height 4", "push"),
    ("Dumbbell Shoulder Press", 65, 6, "65 lbs | 6 reps", "push"),
    ("Dumbbell Lateral Raises", 25, 0, "25 lbs | To failure", "push"),
    ("Flat Dumbbell Press", 80, 6, "80, 75 lbs | 5–7 reps", "push2"),
    ("Incline Dumbbell Press", 70, 6, "70, 65 lbs | 5–7 reps", "push2"),
    ("Downward Cable Press", 33, 0, "33 lbs | reps not logged", "push2"),
    ("Tricep Extensions (Cable, Single/Double)", 35, 0, "35 lbs | reps not logged", "push2"),
    ("Shrugs (DB/KB)", 25, 0, "25 lbs | To failure", "push2"),
    ("Pull-Ups (Assisted)", 20, 0, "20 lbs assist | To failure", "pull"),
    ("Seated Low Rows (Close Grip)", 70, 0, "~70 lbs (est.) | reps not logged", "pull"),
    ("EZ Bar Preacher Curl", 50, 7, "50 lbs | 6–8 reps", "pull"),
    ("Seated Lat Pulldowns (Wide)", 130, 7, "130 lbs | 6–8 reps", "pull"),
    ("Incline Dumbbell Curls", 25, 0, "25 lbs | reps not logged", "pull"),
    ("Straight Arm Pulldowns (Bar)", 35, 0, "35 lbs | reps not logged", "pull"),
    ("Seated Lat Pulldowns (Wide)", 130, 7, "130 lbs | 6–8 reps", "pull2"),
    ("Diverging Lat Pulldown", 80, 0, "80 lbs, 60 lbs | reps not logged", "pull2"),
    ("Standing Dumbbell Curls", 25, 0, "25 lbs | To failure", "pull2"),
    ("Cable X Front Crosses", 6, 0, "6 down | reps not logged", "pull2"),
    ("Between Legs Cable Bicep Curls", 30, 0, "30 lbs | reps not logged", "pull2"),
    ("Barbell Squats", 135, 0, "~135 lbs (est.) | reps not logged", "legs"),
    ("Trap Bar Deadlifts", 135, 0, "~135 lbs (est.) | reps not logged", "legs"),
    ("Kettlebell Lunges", 35, 30, "35 lbs each | 30 reps (15 each side)", "legs"),
    ("Calf Extensions", 100, 0, "~100 lbs (est.) | reps not logged", "legs"),
    ("Leg Press", 180, 0, "~180 lbs (est.) | reps not logged", "legs"),
    ("Hip Thrusts", 95, 0, "~95 lbs (est.) | reps not logged", "legs"),
    ("Leg Press", 180, 0, "~180 lbs (est.) | reps not logged", "legs2"),
    ("Barbell Squats", 135, 0, "~135 lbs (est.) | reps not logged", "legs2"),
    ("Quad Extensions", 100, 10, "100 lbs | 10 reps (slow downs)", "legs2"),
    ("Hamstring Curls", 70, 0, "~70 lbs (est.) | reps not logged", "legs2"),
]


def seed(db_path: str = "fitness.db") -> int:
    """Insert the default workout plan when the exercise table is empty."""
    repo = ExerciseRepository(db_path)
    if repo.fetch_all_exercises():
        print("Database already contains exercises")
        return 0

    for name, weight, reps, notes, category in SAMPLE_EXERCISES:
        repo.create(
            {
                "name": name,
                "weight": weight,
                "reps": reps,
                "notes": notes,
                "category": category,
            }
        )
    print("Seed data inserted")
    return len(SAMPLE_EXERCISES)


if __name__ == "__main__":
    seed(sys.argv[1] if len(sys.argv) > 1 else "fitness.db")
