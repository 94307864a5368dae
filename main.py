"""ShipIt - Startup Idea Validation

Simple CLI for running one analysis and watching its event stream.
"""

import argparse
import asyncio
import json

from shipit.agents.pipeline import AnalysisPipeline


async def run_analysis(idea: str, *, timeout: float | None = None, dump: str | None = None):
    """Run the analysis pipeline on the given idea."""
    print(f"Idea: {idea}")
    print("-" * 50)

    pipeline = AnalysisPipeline()

    async for event in pipeline.stream(idea, timeout=timeout):
        event_type = event.event.value
        data = event.data

        if event_type == "stage":
            print(f"\n[~] {data.get('message') or data.get('stage')}")

        elif event_type == "progress":
            print(f"  - {data.get('message', '')}")

        elif event_type == "research_complete":
            print(
                f"\n[*] Research complete: {data.get('sources')} sources, "
                f"{data.get('competitors')} competitors, {data.get('caseStudies')} case studies"
            )

        elif event_type == "section_complete":
            print(f"  [+] {data.get('section')} ready")

        elif event_type == "complete":
            print(f"\n[*] Analysis Complete!")
            if data.get("reportId"):
                print(f"   Report id: {data['reportId']}")
            report = pipeline.report
            print(f"   {report.get('name', '')}: {report.get('tagline', '')}")
            print(f"   Verdict: {report.get('verdict', '')}")

        elif event_type == "error":
            print(f"\n[!] Error: {data.get('message', 'Unknown error')}")

    if dump and pipeline.report:
        with open(dump, "w", encoding="utf-8") as f:
            json.dump(pipeline.report, f, indent=2)
        print(f"\nReport written to {dump}")


def main():
    parser = argparse.ArgumentParser(description="ShipIt startup idea validator")
    parser.add_argument("--idea", "-i", required=True, help="One-sentence startup idea")
    parser.add_argument("--timeout", "-t", type=float, help="Overall time budget in seconds")
    parser.add_argument("--output", "-o", help="Write the finished report to this JSON file")

    args = parser.parse_args()

    asyncio.run(run_analysis(args.idea, timeout=args.timeout, dump=args.output))


if __name__ == "__main__":
    main()
