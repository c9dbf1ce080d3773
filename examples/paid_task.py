"""
Example: Paid Task With Feedback

Calls an x402-protected agent endpoint and rates the agent once the task
has succeeded.
"""

import asyncio

from dotenv import load_dotenv
load_dotenv()

from fluidsdk import Config, FluidClient


async def main():
    """
    Paid task example showing:
    1. Initialize client (FLUID_PRIVATE_KEY pays and signs feedback)
    2. Run the task, paying up to FLUID_X402_MAX_AMOUNT
    3. Submit feedback only if the task succeeded
    """
    print("=== Fluid SDK Paid Task Example ===\n")

    async with FluidClient(Config.from_env()) as client:
        print(f"✅ Client initialized (x402 cap: {client.config.x402_max_amount})")

        print("\n💸 Running /weather on agent 84532:7...")
        outcome = await client.execute_task_with_feedback(
            "84532:7",
            "/weather",
            "https://agent.example",
            {"city": "Lisbon"},
            score=90,
            tags=["weather"],
        )

        task = outcome.task_result
        if not task.success:
            print(f"❌ Task failed: {task.error}")
            return

        print(f"✅ Task result: {task.data}")
        if task.paid:
            print(f"   Paid: {task.amount_paid} (settlement: {(task.payment_response or {}).get('transaction', '-')})")

        if outcome.success:
            print(f"✅ Feedback confirmed in block {outcome.feedback_result.block_number}")
        else:
            print(f"⚠️  {outcome.error}")


if __name__ == "__main__":
    asyncio.run(main())
