"""Canned NY Fed and FRED responses plus a fake upstream for httpx.MockTransport."""

from __future__ import annotations

from typing import Any

import httpx


SOFR_PATH = "/api/rates/secured/sofr/search.json"
EFFR_PATH = "/api/rates/unsecured/effr/search.json"
RRP_PATH = "/api/rp/reverserepo/all/results/search.json"
FRED_PATH = "/graph/fredgraph.csv"


def sofr_payload() -> dict[str, Any]:
    return {
        "refRates": [
            {
                "effectiveDate": "2024-01-01",
                "type": "SOFR",
                "percentRate": 5.31,
                "percentile1": 5.25,
                "percentile25": 5.29,
                "percentile75": 5.33,
                "percentile99": 5.40,
                "volumeInBillions": 1800,
            },
            {
                "effectiveDate": "2024-01-02",
                "type": "SOFR",
                "percentRate": 5.32,
                "percentile1": 5.26,
                "percentile25": 5.30,
                "percentile75": 5.34,
                "volumeInBillions": 1850,
            },
            {
                "effectiveDate": "2024-01-03",
                "type": "SOFR",
                "percentRate": 5.33,
                "percentile1": 5.27,
                "percentile25": 5.31,
                "percentile75": 5.35,
                "percentile99": 5.45,
                "volumeInBillions": 1900,
            },
        ]
    }


def effr_payload() -> dict[str, Any]:
    return {
        "refRates": [
            {
                "effectiveDate": day,
                "type": "EFFR",
                "percentRate": 5.33,
                "percentile1": 5.30,
                "percentile25": 5.32,
                "percentile75": 5.33,
                "percentile99": 5.45,
                "targetRateFrom": 5.25,
                "targetRateTo": 5.50,
                "volumeInBillions": 100,
            }
            for day in ("2024-01-01", "2024-01-02", "2024-01-03")
        ]
    }


def rrp_payload() -> dict[str, Any]:
    return {
        "repoOperations": {
            "results": [
                {
                    "operationDate": "2024-01-02",
                    "totalAmtAccepted": 700_000_000_000,
                    "totalCounterpartyCount": 90,
                    "submittedParticipantsByType": [
                        {"participantType": "Money Market Fund", "totalAmtAccepted": 500_000_000_000},
                        {"participantType": "GSE", "totalAmtAccepted": 50_000_000_000},
                        {"participantType": "Bank", "totalAmtAccepted": 0},
                    ],
                },
                {
                    "operationDate": "2024-01-03",
                    "totalAmtAccepted": 650_000_000_000,
                    "totalCounterpartyCount": 85,
                },
            ]
        }
    }


FRED_CSV = {
    "IORB": "DATE,IORB\n2024-01-01,5.40\n2024-01-02,5.40\n2024-01-03,5.40\n",
    "SRFTSYD": "DATE,SRFTSYD\n2024-01-02,5.50\n2024-01-03,.\n",
    "RRPONTSYAWARD": "DATE,RRPONTSYAWARD\n2024-01-02,5.30\n2024-01-03,5.30\n",
}


class FakeUpstream:
    """Routes requests by path; ``failures`` maps a path or FRED id to a status code."""

    def __init__(self) -> None:
        self.json_payloads: dict[str, Any] = {
            SOFR_PATH: sofr_payload(),
            EFFR_PATH: effr_payload(),
            RRP_PATH: rrp_payload(),
        }
        self.csv_payloads: dict[str, str] = dict(FRED_CSV)
        self.failures: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == FRED_PATH:
            series_id = request.url.params["id"]
            if series_id in self.failures:
                return httpx.Response(self.failures[series_id], text="unavailable")
            return httpx.Response(200, text=self.csv_payloads.get(series_id, "DATE,VALUE\n"))
        if path in self.failures:
            return httpx.Response(self.failures[path], json={"error": "unavailable"})
        if path in self.json_payloads:
            return httpx.Response(200, json=self.json_payloads[path])
        return httpx.Response(404, json={"error": "not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


