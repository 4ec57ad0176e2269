"""Developer agent: emits template source files for a requirement."""
from __future__ import annotations

from typing import Any, Dict, List

from autoforge.agents.base import Agent, require_fields
from autoforge.core.models import AgentCapabilities, AgentType

_EXPRESS_ROUTER = """import express, { Request, Response } from 'express';

export const router = express.Router();

router.get('/health', (req: Request, res: Response) => {
  res.json({ status: 'ok' });
});

export default router;
"""

_REACT_COMPONENT = """import React from 'react';

interface ComponentProps {
  // Add props here
}

export const Component: React.FC<ComponentProps> = () => {
  return (
    <div>
      {/* Component implementation */}
    </div>
  );
};

export default Component;
"""

_TS_CLASS = """export class {name} {{
  // {name} implementation
}}

export default {name};
"""


def api_code(language: str, framework: str) -> str:
    if language == "typescript" and framework == "express":
        return _EXPRESS_ROUTER
    return f"// API implementation for {language} with {framework}"


def component_code(framework: str) -> str:
    if framework in ("react", "next"):
        return _REACT_COMPONENT
    return f"// Component implementation for {framework}"


def class_code(kind: str, language: str) -> str:
    if language == "typescript":
        return _TS_CLASS.format(name=kind)
    return f"// {kind} implementation for {language}"


def generate_files(requirement: str, language: str, framework: str) -> List[Dict[str, str]]:
    text = requirement.lower()
    files: List[Dict[str, str]] = []
    if "api" in text or "endpoint" in text:
        files.append({"path": "src/routes/api.ts", "content": api_code(language, framework), "language": language})
    if "component" in text or "ui" in text:
        files.append({"path": "src/components/Component.tsx", "content": component_code(framework), "language": "tsx"})
    if "service" in text or "logic" in text:
        files.append({"path": "src/services/Service.ts", "content": class_code("Service", language), "language": language})
    if not files:
        files.append({"path": "src/modules/Module.ts", "content": class_code("Module", language), "language": language})
    return files


def package_dependencies(language: str, framework: str) -> List[str]:
    deps: List[str] = []
    if language == "typescript":
        deps.append("typescript")
    if framework == "express":
        deps.extend(["express", "@types/express"])
    if framework in ("react", "next"):
        deps.extend(["react", "react-dom"])
    return deps


class DeveloperAgent(Agent):
    """Generates code scaffolding from a requirement."""

    agent_id = "developer-001"
    name = "Developer Agent"
    agent_type = AgentType.DEVELOPER
    description = "Generates clean, production-ready, type-safe code following best practices"
    capabilities = AgentCapabilities(can_develop=True)

    async def perform(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        require_fields(payload, "requirement")
        await self.simulate_work(1.5)

        requirement = str(payload["requirement"])
        language = payload.get("language") or "typescript"
        framework = payload.get("framework") or "none"
        files = generate_files(requirement, language, framework)
        return {
            "files": files,
            "summary": f"Generated {len(files)} file(s) for: {requirement}",
            "dependencies": package_dependencies(language, framework),
        }
