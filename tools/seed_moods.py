#!/usr/bin/env python3
"""
Seed synthetic mood history for a specific user in Supabase.

Writes one ``mood_months`` document per month covering the last N days, with
1-3 moods per tracked day and roughly one untracked day in five. A patient
"profile" biases the mood mix so the reports have something to show.
It prompts for confirmation before writing (pass --yes to skip).

Requirements:
    - SUPABASE_URL environment variable
    - SUPABASE_SERVICE_KEY environment variable
    - the project installed (pip install -e .)

Usage:
    python tools/seed_moods.py <user_id> <num_days> [stable|mixed|at_risk] [--yes]

Example:
    python tools/seed_moods.py 1b4e28ba-2fa1-11d2-883f-0016d3cca427 60 at_risk
"""

import os
import random
import sys
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from supabase import Client, create_client

from analysis.mood_catalog import get_mood_tone, list_mood_profiles
from api.schemas.moods import MonthDocument, StoredDay, StoredMood

MOOD_MONTHS_TABLE = "mood_months"

# probability of drawing a positive mood on a given day
PROFILE_POSITIVE_SHARE = {
    "stable": 0.75,
    "mixed": 0.5,
    "at_risk": 0.2,
}


def get_supabase_client() -> Client:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_SERVICE_KEY")

    if not url or not key:
        print("ERROR: Missing required environment variables", file=sys.stderr)
        print("Please set SUPABASE_URL and SUPABASE_SERVICE_KEY", file=sys.stderr)
        sys.exit(1)

    return create_client(url, key)


def _split_catalog():
    positive, negative = [], []
    for profile in list_mood_profiles():
        tone = get_mood_tone(profile.valence)
        (positive if tone == "positive" else negative).append(profile.mood_id)
    return positive, negative


def generate_documents(
    user_id: str,
    num_days: int,
    profile: str,
    rng: random.Random,
) -> List[MonthDocument]:
    """
    Build month documents for the last ``num_days`` days (today included).
    """
    positive, negative = _split_catalog()
    share = PROFILE_POSITIVE_SHARE[profile]
    now = datetime.now(timezone.utc)
    stamp = now.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    documents: Dict[str, MonthDocument] = {}
    for days_ago in range(num_days):
        if rng.random() < 0.2:
            continue
        day = (now - timedelta(days=days_ago)).date()
        month_id = day.strftime("%Y-%m")

        moods = []
        for _ in range(rng.randint(1, 3)):
            pool = positive if rng.random() < share else negative
            at = datetime(day.year, day.month, day.day, rng.randint(7, 22), rng.randint(0, 59),
                          tzinfo=timezone.utc)
            moods.append(
                StoredMood(
                    mood_id=rng.choice(pool),
                    at=at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
                )
            )

        document = documents.setdefault(
            month_id,
            MonthDocument(
                user_id=user_id,
                month_id=month_id,
                year=day.year,
                month=day.month,
                created_at=stamp,
                updated_at=stamp,
            ),
        )
        document.days[f"{day.day:02d}"] = StoredDay(moods=moods)

    return sorted(documents.values(), key=lambda doc: doc.month_id)


def confirm_action(message: str) -> bool:
    while True:
        response = input(f"{message} (yes/no): ").strip().lower()
        if response in ['yes', 'y']:
            return True
        elif response in ['no', 'n']:
            return False
        else:
            print("Please answer 'yes' or 'no'")


def seed_moods(user_id: str, num_days: int, profile: str, assume_yes: bool = False):
    documents = generate_documents(user_id, num_days, profile, random.Random())
    tracked = sum(len(doc.days) for doc in documents)
    moods = sum(len(day.moods) for doc in documents for day in doc.days.values())

    print(f"\nPreparing to seed {tracked} tracked day(s) / {moods} mood(s) for user: {user_id}")
    print(f"Profile: {profile}, months: {', '.join(doc.month_id for doc in documents)}")
    print("-" * 60)

    if not assume_yes and not confirm_action("\nWrite these month documents (existing months are overwritten)?"):
        print("Operation cancelled.")
        return

    client = get_supabase_client()
    rows = [doc.model_dump(mode="json", by_alias=True) for doc in documents]
    try:
        client.table(MOOD_MONTHS_TABLE).upsert(rows, on_conflict="user_id,month_id").execute()
    except Exception as e:
        print(f"\nERROR: Failed to write mood documents: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"\nSuccessfully wrote {len(rows)} month document(s) for user {user_id}")


def main():
    args = [arg for arg in sys.argv[1:] if arg != "--yes"]
    assume_yes = "--yes" in sys.argv[1:]

    if len(args) not in (2, 3):
        print(__doc__)
        sys.exit(1)

    user_id = args[0]
    try:
        num_days = int(args[1])
    except ValueError:
        print(f"ERROR: num_days must be an integer, got: {args[1]}", file=sys.stderr)
        sys.exit(1)
    if num_days < 1 or num_days > 366:
        print("ERROR: num_days must be between 1 and 366", file=sys.stderr)
        sys.exit(1)

    profile = args[2] if len(args) == 3 else "mixed"
    if profile not in PROFILE_POSITIVE_SHARE:
        print(f"ERROR: profile must be one of {', '.join(PROFILE_POSITIVE_SHARE)}", file=sys.stderr)
        sys.exit(1)

    seed_moods(user_id, num_days, profile, assume_yes)


if __name__ == "__main__":
    main()
