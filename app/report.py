# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: turn a ScanSummary into something a person can read (a short text block, optionally colored for the
terminal) and relay the same text to a chat webhook when one is configured. the webhook is best effort:
failures are logged and reported back as False, never raised.
"""

from __future__ import annotations  # lets us use string annotations before functions are defined

import logging  # for recording webhook failures

import requests  # for posting the summary to the webhook

from algorithm.evidence import EvidenceTier
from algorithm.verdict_engine import ScanSummary, Verdict

log = logging.getLogger("dmasentry.report")

MAX_FINDINGS = 25  # findings listed in the text report
WEBHOOK_LIMIT = 1900  # chat webhooks reject messages over 2000 chars; leave room for the fence

_VERDICT_TEXT = {
    Verdict.RED: "RED - DMA hardware evidence found",
    Verdict.YELLOW: "YELLOW - circumstantial evidence, system exposed",
    Verdict.GREEN: "GREEN - no evidence found",
}

# ANSI codes, same palette as the console banner
_ANSI = {
    Verdict.RED: "\x1b[31m",
    Verdict.YELLOW: "\x1b[33m",
    Verdict.GREEN: "\x1b[32m",
}
_BOLD = "\x1b[1m"
_RESET = "\x1b[0m"


def _flag(value: bool) -> str:
    return "enabled" if value else "disabled"


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def render_report(summary: ScanSummary, color: bool = False) -> str:
    verdict = _VERDICT_TEXT[summary.verdict]
    if color:
        verdict = f"{_BOLD}{_ANSI[summary.verdict]}{verdict}{_RESET}"

    lines = [
        f"DMASentry scan - {summary.host or 'unknown host'} - {summary.scanned_at}",
        f"Verdict: {verdict}",
        "",
        f"Secure Boot:           {_flag(summary.secure_boot_enabled)}",
        f"Kernel DMA Protection: {_flag(summary.kernel_dma_enabled)}",
        "",
        "Source                     concrete  suspicious",
    ]
    for name, tally in summary.tallies.items():
        title = getattr(name, "display_name", str(name))
        lines.append(f"{title:<26} {tally.concrete:>8}  {tally.suspicious:>10}")
    lines += [
        "",
        f"Thunderbolt anomaly:   {_yes_no(summary.thunderbolt_anomaly)}",
        f"Multiple monitors:     {_yes_no(summary.monitor_anomaly)} ({summary.monitor_count} found)",
        f"Totals: {summary.total_concrete} concrete, {summary.total_suspicious} suspicious",
    ]

    findings = summary.findings
    if findings:
        lines += ["", "Findings:"]
        for f in findings[:MAX_FINDINGS]:
            mark = "!!" if f.tier is EvidenceTier.CONCRETE else " ?"
            lines.append(f" {mark} [{f.source.value}] {f.label}")
        if len(findings) > MAX_FINDINGS:
            lines.append(f"    ... and {len(findings) - MAX_FINDINGS} more")
    return "\n".join(lines)


def webhook_payload(summary: ScanSummary) -> dict[str, str]:
    """single text field, the format Discord/Slack-style incoming webhooks accept."""
    text = render_report(summary, color=False)
    if len(text) > WEBHOOK_LIMIT:
        text = text[: WEBHOOK_LIMIT - 4] + "\n..."
    return {"content": f"```\n{text}\n```"}


def post_summary(url: str, summary: ScanSummary, timeout: float = 8.0) -> bool:
    if not url:
        return False
    try:
        resp = requests.post(url, json=webhook_payload(summary), timeout=timeout)
    except requests.RequestException as exc:
        log.warning("webhook post failed: %s", exc)
        return False
    if resp.status_code >= 400:
        log.warning("webhook rejected summary: HTTP %s %s", resp.status_code, resp.text[:200])
        return False
    return True
