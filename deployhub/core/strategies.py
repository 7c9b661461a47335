"""Deploy strategies: a local simulator and a Vercel-backed poller."""

from deployhub.config import Settings
from deployhub.core.driver import DeployStrategy, RunContext
from deployhub.core.exceptions import (
    ConfigurationError,
    DeploymentTimeoutError,
    ProviderBuildError,
    ProviderError,
)
from deployhub.services.github import GitHubClient
from deployhub.services.vercel import ProviderState, VercelClient, VercelDeployment
from deployhub.utils.logging import get_logger


class SimulatedStrategy(DeployStrategy):
    """Walks the phases on fixed delays. Always succeeds on its own."""

    name = "simulated"

    def __init__(self, domain: str = "deployhub.app"):
        self.domain = domain

    def deployed_url(self, ctx: RunContext) -> str:
        return f"https://{ctx.project.slug}.{self.domain}"

    async def build(self, ctx: RunContext) -> None:
        await self.narrate_build(ctx)

    async def deploy(self, ctx: RunContext) -> str:
        await ctx.info("Deploying to production...")
        await ctx.pause(1.2)
        await ctx.info("Creating container...")
        await ctx.pause(1.0)
        await ctx.info("Configuring networking...")
        await ctx.pause(0.8)
        await ctx.info("Setting up SSL certificate...")
        await ctx.pause(1.0)
        await ctx.success("SSL certificate configured")
        await ctx.pause(0.6)
        await ctx.info("Starting application...")
        await ctx.pause(1.5)
        return self.deployed_url(ctx)


class ProviderStrategy(DeployStrategy):
    """Creates a Vercel deployment from the GitHub repository and polls it.

    The build phase ends only when Vercel reports READY. Vercel has no
    separate deploying phase, so the deploying narration happens after the
    build is confirmed.
    """

    name = "provider"

    started_message = "Application deployed successfully"
    live_message = "Your site is now live and accessible"

    def __init__(
        self,
        github: GitHubClient,
        vercel: VercelClient,
        poll_interval: float = 3.0,
        max_attempts: int = 60,
    ):
        self.github = github
        self.vercel = vercel
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.provider_deployment: VercelDeployment | None = None
        self.logger = get_logger("strategy.provider")

    async def prepare(self, ctx: RunContext) -> None:
        await ctx.info(f"Repository: {ctx.project.repository_url}")
        await ctx.info(f"Branch: {ctx.project.branch}")
        await ctx.pause(0.5)

    async def build(self, ctx: RunContext) -> None:
        await ctx.info("Connecting to Vercel...")
        await ctx.pause(0.8)

        await ctx.info("Fetching repository details...")
        repo_id = await self.github.get_repository_id(ctx.project.repository)
        created = await self.vercel.create_deployment(
            repo_id, ctx.project.branch, ctx.project.name
        )
        await ctx.success("Vercel deployment created")
        await ctx.info(f"Deployment ID: {created.id}")
        await ctx.pause(0.5)

        await self.narrate_build(ctx)

        await ctx.info("Waiting for Vercel to complete build...")
        self.provider_deployment = await self.wait_until_ready(ctx, created.id)

    async def wait_until_ready(
        self, ctx: RunContext, provider_deployment_id: str
    ) -> VercelDeployment:
        """Poll until READY. ERROR and the attempt ceiling are fatal.

        Request failures are retried; only a failure on the last allowed
        attempt propagates.
        """
        for attempt in range(1, self.max_attempts + 1):
            await ctx.sleep(self.poll_interval)

            try:
                current = await self.vercel.get_deployment(provider_deployment_id)
            except ConfigurationError:
                raise
            except ProviderError as e:
                self.logger.warning(
                    "provider.poll_failed",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=e.message,
                )
                if attempt >= self.max_attempts:
                    raise
                continue

            state = current.state
            self.logger.debug(
                "provider.polled", attempt=attempt, ready_state=current.ready_state
            )
            if state == ProviderState.READY:
                await ctx.success("Build completed successfully")
                return current
            if state == ProviderState.ERROR:
                message = current.error.message if current.error else "Unknown error"
                raise ProviderBuildError(message, provider_deployment_id)
            if state == ProviderState.BUILDING:
                elapsed = attempt * self.poll_interval
                await ctx.info(f"Build in progress... ({elapsed:g}s)")
            else:
                await ctx.info("Build queued...")

        raise DeploymentTimeoutError(
            self.max_attempts, self.max_attempts * self.poll_interval
        )

    async def deploy(self, ctx: RunContext) -> str:
        if self.provider_deployment is None:
            raise ProviderError("Vercel deployment is not ready")

        await ctx.info("Deploying to Vercel production...")
        await ctx.pause(1.0)
        await ctx.info("Configuring SSL certificate...")
        await ctx.pause(0.5)
        await ctx.success("SSL certificate configured")
        await ctx.pause(0.5)
        return self.provider_deployment.public_url


def build_strategy(settings: Settings, github: GitHubClient) -> DeployStrategy:
    """Fresh strategy for one run, chosen by ``vercel_deploy_real``."""
    if settings.vercel_deploy_real:
        return ProviderStrategy(
            github=github,
            vercel=VercelClient.from_settings(settings),
            poll_interval=settings.provider_poll_interval,
            max_attempts=settings.provider_poll_max_attempts,
        )
    return SimulatedStrategy(domain=settings.deployed_domain)
