"""HTTP tests for /api/frameworks and /api/assessments."""

from __future__ import annotations

import uuid

import pytest

from conftest import auth_headers


async def new_assessment(client, seeded, name="Annual ECC assessment"):
    resp = await client.post(
        "/api/assessments",
        json={"framework_id": str(seeded.framework_id), "name": name},
        headers=auth_headers(seeded.user_id),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestFrameworks:
    async def test_list(self, client, seeded):
        resp = await client.get("/api/frameworks", headers=auth_headers(seeded.user_id))
        assert resp.status_code == 200
        assert [f["name"] for f in resp.json()] == ["nca_ecc"]

    async def test_detail(self, client, seeded):
        resp = await client.get(f"/api/frameworks/{seeded.framework_id}", headers=auth_headers(seeded.user_id))
        assert resp.status_code == 200

        framework = resp.json()
        assert framework["display_name"] == "NCA ECC"
        governance, defense = framework["domains"]
        assert governance["name"] == "governance"
        assert [s["name"] for s in governance["subdomains"]] == ["strategy"]
        assert len(governance["controls"]) == 5
        assert [c["control_id"] for c in defense["controls"]][:2] == ["ECC-2.1.1", "ECC-2.1.2"]
        assert defense["subdomains"] == []

    async def test_unknown(self, client, seeded):
        resp = await client.get(f"/api/frameworks/{uuid.uuid4()}", headers=auth_headers(seeded.user_id))
        assert resp.status_code == 404

    async def test_requires_authentication(self, client, seeded):
        assert (await client.get("/api/frameworks")).status_code == 401


class TestAssessments:
    async def test_create_seeds_every_control(self, client, seeded):
        assessment = await new_assessment(client, seeded)

        assert assessment["status"] == "in_progress"
        assert assessment["company_id"] == str(seeded.company_id)
        assert assessment["result_count"] == 11
        assert assessment["score"] is None

    async def test_list_for_own_company(self, client, seeded):
        await new_assessment(client, seeded)

        resp = await client.get("/api/assessments", headers=auth_headers(seeded.user_id))
        assert len(resp.json()) == 2
        resp = await client.get("/api/assessments", headers=auth_headers(seeded.outsider_id))
        assert resp.json() == []

    async def test_results_sorted_by_domain_then_control(self, client, seeded):
        assessment = await new_assessment(client, seeded)

        resp = await client.get(f"/api/assessments/{assessment['id']}/results", headers=auth_headers(seeded.user_id))
        assert resp.status_code == 200
        results = resp.json()
        assert [r["control_identifier"] for r in results] == sorted(seeded.controls)
        assert {r["status"] for r in results} == {"not_implemented"}
        assert results[0]["domain_name"] == "governance"
        assert results[-1]["domain_name"] == "defense"

    async def test_outsider_forbidden(self, client, seeded):
        resp = await client.get(f"/api/assessments/{seeded.assessment_id}", headers=auth_headers(seeded.outsider_id))
        assert resp.status_code == 403

    async def test_unknown_framework(self, client, seeded):
        resp = await client.post(
            "/api/assessments",
            json={"framework_id": str(uuid.uuid4()), "name": "x"},
            headers=auth_headers(seeded.user_id),
        )
        assert resp.status_code == 404

    async def test_admin_without_company_cannot_create(self, client, seeded):
        resp = await client.post(
            "/api/assessments",
            json={"framework_id": str(seeded.framework_id), "name": "x"},
            headers=auth_headers(seeded.admin_id),
        )
        assert resp.status_code == 403


class TestControlResults:
    async def test_upsert_keeps_single_row(self, client, seeded):
        assessment = await new_assessment(client, seeded)
        control_id = seeded.controls["ECC-2.3.1"]
        url = f"/api/assessments/{assessment['id']}/results/{control_id}"
        headers = auth_headers(seeded.user_id)

        resp = await client.put(url, json={"status": "partially_implemented", "evidence": "policy.pdf"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "partially_implemented"
        assert resp.json()["control_identifier"] == "ECC-2.3.1"

        resp = await client.put(url, json={"status": "implemented", "comments": "signed off"}, headers=headers)
        body = resp.json()
        assert body["status"] == "implemented"
        assert body["evidence"] == "policy.pdf"
        assert body["comments"] == "signed off"

        results = (await client.get(f"/api/assessments/{assessment['id']}/results", headers=headers)).json()
        assert len(results) == 11
        assert [r["status"] for r in results if r["control_id"] == str(control_id)] == ["implemented"]

    async def test_control_outside_framework(self, client, seeded):
        resp = await client.put(
            f"/api/assessments/{seeded.assessment_id}/results/{uuid.uuid4()}",
            json={"status": "implemented"},
            headers=auth_headers(seeded.user_id),
        )
        assert resp.status_code == 404

    async def test_invalid_status(self, client, seeded):
        resp = await client.put(
            f"/api/assessments/{seeded.assessment_id}/results/{seeded.controls['ECC-1.1.1']}",
            json={"status": "done"},
            headers=auth_headers(seeded.user_id),
        )
        assert resp.status_code == 422


class TestComplete:
    async def test_sets_rounded_score(self, client, seeded):
        resp = await client.post(f"/api/assessments/{seeded.assessment_id}/complete", headers=auth_headers(seeded.user_id))

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "completed"
        assert body["score"] == pytest.approx(70.0)
        assert body["completion_date"] is not None
        assert body["result_count"] == 11

    async def test_one_third_score_is_rounded(self, client, seeded):
        assessment = await new_assessment(client, seeded)
        headers = auth_headers(seeded.user_id)
        # 11 controls: mark 2 not applicable, 3 implemented -> 3 / 9 applicable
        for code in ("ECC-1.1.1", "ECC-1.1.2"):
            await client.put(
                f"/api/assessments/{assessment['id']}/results/{seeded.controls[code]}",
                json={"status": "not_applicable"}, headers=headers,
            )
        for code in ("ECC-1.2.1", "ECC-1.2.2", "ECC-1.3.1"):
            await client.put(
                f"/api/assessments/{assessment['id']}/results/{seeded.controls[code]}",
                json={"status": "implemented"}, headers=headers,
            )

        resp = await client.post(f"/api/assessments/{assessment['id']}/complete", headers=headers)
        assert resp.json()["score"] == 33.3
