"""
Example: Give Feedback

Submits a feedback attestation for an agent on Sepolia and looks up its
MCP capabilities.
"""

import asyncio

from dotenv import load_dotenv
load_dotenv()

from fluidsdk import Config, FluidClient, FluidSDKError


async def main():
    """
    Basic example showing:
    1. Initialize client from FLUID_RPC_URL / FLUID_PRIVATE_KEY / PINATA_JWT
    2. Discover the agent's MCP tools
    3. Submit feedback and wait for confirmation
    """
    print("=== Fluid SDK Feedback Example ===\n")

    async with FluidClient(Config.from_env()) as client:
        print("✅ Client initialized")

        caps = await client.fetch_mcp_capabilities("https://agent.example/mcp")
        if caps:
            print(f"✅ Agent tools: {', '.join(caps.tools) or '-'}")
        else:
            print("⚠️  No MCP capabilities found")

        print("\n📤 Submitting feedback for agent 11155111:42...")
        try:
            result = await client.give_feedback(
                "11155111:42",
                score=97,
                tags=["helpful", "fast"],
                capability="tools",
                name=caps.tools[0] if caps and caps.tools else None,
            )
        except FluidSDKError as e:
            print(f"❌ Feedback failed: {e}")
            return

        print(f"✅ Confirmed in block {result.block_number}")
        print(f"   Tx: {result.tx_hash}")
        print(f"   Index: {result.feedback_index}{' (assumed)' if result.index_assumed else ''}")
        print(f"   File: {result.feedback_uri or '(not uploaded)'}")


if __name__ == "__main__":
    asyncio.run(main())
