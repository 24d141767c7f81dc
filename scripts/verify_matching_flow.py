#!/usr/bin/env python3
"""
End-to-end check against a running server:
post a job for 2 workers dated today, accept one worker, expect in-progress,
then complete it and verify further decisions are refused.
"""
import asyncio
import uuid
from datetime import date

import httpx

API_URL = "http://localhost:8000"

async def verify_matching_flow():
    farmer_id = f"farmer-{uuid.uuid4().hex[:8]}"

    async with httpx.AsyncClient(base_url=API_URL) as client:
        # 1. Post a job
        print("1. Posting job...")
        resp = await client.post("/api/v1/jobs", json={
            "farmer_id": farmer_id,
            "farmer_name": "Verify Farmer",
            "title": "Rice harvest",
            "description": "Cutting and bundling",
            "location": "Chitwan",
            "wage": 1200,
            "duration": 2,
            "duration_type": "days",
            "required_workers": 2,
            "preferred_date": date.today().isoformat(),
        })
        resp.raise_for_status()
        job_id = resp.json()["id"]
        print(f"   Job created: {job_id}")

        # 2. Two workers apply
        print("2. Workers applying...")
        app_ids = []
        for n in range(2):
            resp = await client.post(f"/api/v1/jobs/{job_id}/applications", json={
                "worker_id": f"worker-{n}-{uuid.uuid4().hex[:6]}",
                "worker_name": f"Worker {n}",
                "worker_email": f"worker{n}@example.com",
            })
            resp.raise_for_status()
            app_ids.append(resp.json()["id"])
        print(f"   Applications: {app_ids}")

        # 3. Wage is now locked
        print("3. Trying to change wage...")
        resp = await client.patch(f"/api/v1/jobs/{job_id}", json={"wage": 1500})
        if resp.status_code == 409:
            print("   SUCCESS: wage change refused")
        else:
            print(f"   FAILURE: expected 409, got {resp.status_code}")

        # 4. Accept one worker -> in-progress because the date is today
        print("4. Accepting first worker...")
        resp = await client.post(f"/api/v1/applications/{app_ids[0]}/decision", json={"decision": "accept"})
        resp.raise_for_status()
        job_status = resp.json()["job_status"]
        if job_status == "in-progress":
            print("   SUCCESS: job moved straight to in-progress")
        else:
            print(f"   FAILURE: expected in-progress, got {job_status}")

        # 5. Complete and verify the job is frozen
        print("5. Completing job...")
        resp = await client.post(f"/api/v1/jobs/{job_id}/complete")
        resp.raise_for_status()

        resp = await client.post(f"/api/v1/applications/{app_ids[1]}/decision", json={"decision": "reject"})
        if resp.status_code == 409 and resp.json()["detail"]["code"] == "job_completed":
            print("SUCCESS: completed job refuses further decisions")
        else:
            print(f"FAILURE: expected job_completed, got {resp.status_code} {resp.text}")

if __name__ == "__main__":
    asyncio.run(verify_matching_flow())
