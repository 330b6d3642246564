import argparse
import json

import httpx


def main() -> None:
    parser = argparse.ArgumentParser(description="Exercise a running SaySense backend end to end")
    parser.add_argument("--url", default="http://localhost:8000", help="Backend base URL")
    parser.add_argument("--title", default="Smoke test session", help="Title for the created session")
    args = parser.parse_args()

    with httpx.Client(base_url=args.url.rstrip("/"), timeout=30.0) as client:
        auth = client.post("/auth/guest")
        auth.raise_for_status()
        headers = {"Authorization": f"Bearer {auth.json()['accessToken']}"}

        session = client.post(
            "/sessions",
            json={"title": args.title, "sessionType": "live", "sourceType": "microphone"},
            headers=headers,
        )
        session.raise_for_status()
        sid = session.json()["id"]

        client.post(
            f"/sessions/{sid}/transcripts",
            json={
                "sessionId": sid,
                "startTime": 0,
                "endTime": 6,
                "speakerLabel": "Self",
                "transcript": "Um, so, basically we, uh, like, um, shipped it.",
            },
            headers=headers,
        ).raise_for_status()
        client.post(
            f"/sessions/{sid}/analysis/metrics/batch",
            json={
                "metrics": [
                    {"metricType": "tone", "value": 0.8, "timestamp": 1},
                    {"metricType": "speed", "value": 196, "timestamp": 6},
                ]
            },
            headers=headers,
        ).raise_for_status()

        generated = client.post(f"/sessions/{sid}/feedback/generate", headers=headers)
        generated.raise_for_status()
        detail = client.get(f"/sessions/{sid}", headers=headers)
        detail.raise_for_status()

    print(json.dumps({"session": detail.json(), "suggestions": generated.json()}, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
