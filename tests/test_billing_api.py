"""API tests for org/client billing rules and service type sync."""


class TestOrgRules:
    def test_get_rules(self, client, org, cm_headers):
        response = client.get("/billing/rules", headers=cm_headers)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "rules": {"hourlyRate": 150, "rounding": "15m"}}

    def test_admin_saves_rules(self, client, org, admin_headers):
        response = client.post(
            "/billing/rules",
            json={"rules": {"hourlyRate": 160, "minDuration": 10, "rounding": "6m"}},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["rules"] == {"hourlyRate": 160, "minDuration": 10, "rounding": "6m"}
        assert client.get("/billing/rules", headers=admin_headers).json()["rules"]["hourlyRate"] == 160

    def test_unknown_keys_are_kept(self, client, org, admin_headers):
        response = client.post(
            "/billing/rules",
            json={"rules": {"hourlyRate": 160, "notes": "2024 rate card"}},
            headers=admin_headers,
        )
        assert response.json()["rules"]["notes"] == "2024 rate card"

    def test_invalid_rounding(self, client, org, admin_headers):
        response = client.post("/billing/rules", json={"rules": {"rounding": "30m"}}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["details"][0]["path"] == "rules.rounding"

    def test_negative_rate(self, client, org, admin_headers):
        response = client.post("/billing/rules", json={"rules": {"hourlyRate": -1}}, headers=admin_headers)
        assert response.status_code == 400

    def test_care_manager_cannot_save(self, client, org, cm_headers):
        response = client.post("/billing/rules", json={"rules": {"hourlyRate": 1}}, headers=cm_headers)
        assert response.status_code == 403


class TestClientRules:
    def test_effective_rules_merge_field_by_field(self, client, elder, cm_headers):
        response = client.get(f"/clients/{elder.id}/billing-rules", headers=cm_headers)

        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "orgRules": {"hourlyRate": 150, "rounding": "15m"},
            "clientRules": {"hourlyRate": 175},
            "effective": {"hourlyRate": 175, "minDuration": 0, "rounding": "15m"},
        }

    def test_other_care_manager_is_forbidden(self, client, elder, other_cm_headers):
        response = client.get(f"/clients/{elder.id}/billing-rules", headers=other_cm_headers)
        assert response.status_code == 403

    def test_unknown_client(self, client, org, admin_headers):
        assert client.get("/clients/missing/billing-rules", headers=admin_headers).status_code == 404

    def test_admin_saves_overrides(self, client, elder, admin_headers):
        response = client.post(
            f"/clients/{elder.id}/billing-rules",
            json={"rules": {"minDuration": 30, "rounding": "none"}},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True, "clientRules": {"minDuration": 30, "rounding": "none"}}

        effective = client.get(f"/clients/{elder.id}/billing-rules", headers=admin_headers).json()["effective"]
        # A client "none" does not switch off the org's rounding
        assert effective == {"hourlyRate": 150, "minDuration": 30, "rounding": "15m"}

    def test_care_manager_cannot_save(self, client, elder, cm_headers):
        response = client.post(
            f"/clients/{elder.id}/billing-rules", json={"rules": {"hourlyRate": 999}}, headers=cm_headers
        )
        assert response.status_code == 403


class TestServiceTypes:
    def test_list_active_sorted_by_name(self, client, service_types, cm_headers):
        response = client.get("/service-types", headers=cm_headers)

        assert response.status_code == 200
        assert [s["name"] for s in response.json()["services"]] == [
            "Care Plan Review",
            "Home Visit",
            "Weekly Check-in",
        ]

    def test_bulk_sync(self, client, service_types, admin_headers):
        payload = {
            "services": [
                {"id": service_types["flat"].id, "name": "Care Plan Review", "rateType": "flat", "rateAmount": 65},
                {"name": "Medication Reconciliation", "billingCode": " MED-1 ", "rateType": "monthly", "rateAmount": 40},
                {"name": "Incomplete row", "rateType": "flat"},
            ]
        }

        response = client.post("/service-types/bulk-sync", json=payload, headers=admin_headers)

        assert response.status_code == 200
        services = {s["name"]: s for s in response.json()["services"]}
        assert set(services) == {"Care Plan Review", "Medication Reconciliation"}
        assert services["Care Plan Review"]["rateAmount"] == 65
        assert services["Medication Reconciliation"]["rateType"] == "hourly"
        assert services["Medication Reconciliation"]["billingCode"] == "MED-1"

    def test_removed_service_types_are_deactivated_not_deleted(self, client, db, service_types, admin_headers):
        client.post("/service-types/bulk-sync", json={"services": []}, headers=admin_headers)

        assert client.get("/service-types", headers=admin_headers).json()["services"] == []
        db.refresh(service_types["hourly"])
        assert service_types["hourly"].is_active is False

    def test_unknown_id_rolls_back(self, client, service_types, admin_headers):
        payload = {
            "services": [
                {"name": "New", "rateType": "flat", "rateAmount": 10},
                {"id": "does-not-exist", "name": "Ghost", "rateType": "flat", "rateAmount": 10},
            ]
        }

        response = client.post("/service-types/bulk-sync", json=payload, headers=admin_headers)

        assert response.status_code == 404
        names = [s["name"] for s in client.get("/service-types", headers=admin_headers).json()["services"]]
        assert names == ["Care Plan Review", "Home Visit", "Weekly Check-in"]

    def test_care_manager_cannot_sync(self, client, service_types, cm_headers):
        response = client.post("/service-types/bulk-sync", json={"services": []}, headers=cm_headers)
        assert response.status_code == 403
