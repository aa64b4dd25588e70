"""
Script Catalog - ordered narrative beats for every case type.

Each beat is consumed exactly once, in order, per accepted question. The
catalog is reference data: nothing here is mutated at runtime.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from .models import CaseStatus, CaseType, Clue, ClueCategory, SuspectProfile, TrustLevel


@dataclass(frozen=True)
class ScriptBeat:
    response: str
    new_clues: Tuple[Clue, ...] = ()
    # An empty roster keeps the previous suspects.
    suspect_updates: Tuple[SuspectProfile, ...] = ()
    status: Optional[CaseStatus] = None


@dataclass(frozen=True)
class CaseScript:
    title: str
    synopsis: str
    suspects: Tuple[SuspectProfile, ...]
    beats: Tuple[ScriptBeat, ...] = field(default_factory=tuple)


def _homicide() -> CaseScript:
    ali = SuspectProfile(
        id="homicide-suspect-ali",
        name="Ali Demir",
        occupation="Former prosecutor",
        motive="Lost the case the victim threatened to reopen",
        alibi="Claims he was home alone at 21:00",
        trust=TrustLevel.SKEPTICAL,
    )
    zeynep = SuspectProfile(
        id="homicide-suspect-zeynep",
        name="Zeynep Korkmaz",
        occupation="Journalist",
        motive="Wanted the exclusive on a murder series",
        alibi="Says she was live on air",
        trust=TrustLevel.COOPERATIVE,
    )
    roster = (ali, zeynep)
    ali_exposed = ali.model_copy(
        update={
            "trust": TrustLevel.HOSTILE,
            "alibi": "Was at the hotel at 22:15 but left shortly after.",
        }
    )

    return CaseScript(
        title="Blood in the Hotel Room",
        synopsis="A murder in a luxury hotel room. Does it point to a political conspiracy?",
        suspects=roster,
        beats=(
            ScriptBeat(
                response=(
                    "You find a note at the scene. It reads: 'Don't leave me alone.' The room is a mess, "
                    "the window is ajar and there is broken glass on the floor."
                ),
                new_clues=(
                    Clue(
                        id="homicide-clue-note",
                        title="Handwritten Note",
                        detail="The note reads 'Don't leave me alone'. The ink is fresh.",
                        category=ClueCategory.DOCUMENT,
                    ),
                ),
                suspect_updates=roster,
                status=CaseStatus.investigation(),
            ),
            ScriptBeat(
                response=(
                    "No fingerprints, but the handwriting matches an old letter from Ali Demir. "
                    "The hotel camera went dark at 22:13."
                ),
                new_clues=(
                    Clue(
                        id="homicide-clue-camera-gap",
                        title="Camera Footage Gap",
                        detail="No footage between 22:13 and 22:27.",
                        category=ClueCategory.DOCUMENT,
                    ),
                ),
                suspect_updates=roster,
            ),
            ScriptBeat(
                response=(
                    "Ali Demir admits he was at the hotel at 22:15 but insists the victim was alive. "
                    "Zeynep says the broken glass came from a tumbler Ali smashed."
                ),
                new_clues=(
                    Clue(
                        id="homicide-clue-crystal",
                        title="Broken Crystal Tumbler",
                        detail="A tumbler from Ali Demir's collection.",
                        category=ClueCategory.PHYSICAL_EVIDENCE,
                    ),
                ),
                suspect_updates=(ali_exposed, zeynep),
            ),
            ScriptBeat(
                response=(
                    "You recover the camera footage. After Ali leaves, an unknown figure enters the room. "
                    "Zeynep claims it is a hotel employee."
                ),
                new_clues=(
                    Clue(
                        id="homicide-clue-silhouette",
                        title="Mysterious Silhouette",
                        detail="The camera caught a faceless figure leaving the room.",
                        category=ClueCategory.PHYSICAL_EVIDENCE,
                    ),
                ),
                suspect_updates=roster,
            ),
            ScriptBeat(
                response=(
                    "You prove the silhouette is the hotel's head of security. He confesses to hiding "
                    "evidence for a local politician. Case solved: a chain of political blackmail."
                ),
                suspect_updates=roster,
                status=CaseStatus.solved(),
            ),
        ),
    )


def _missing_person() -> CaseScript:
    melis = SuspectProfile(
        id="missing-suspect-melis",
        name="Melis Akin",
        occupation="Fashion designer",
        motive="Secret relationship with the missing journalist",
        alibi="Reportedly on stage at a launch that night",
        trust=TrustLevel.SKEPTICAL,
    )
    roster = (melis,)

    return CaseScript(
        title="The Missing Story",
        synopsis="A young reporter disappeared while chasing a big story.",
        suspects=roster,
        beats=(
            ScriptBeat(
                response=(
                    "On Ayse's desk you find a locked USB drive and a travel ticket. "
                    "The ticket is for a midnight bus to Ankara."
                ),
                new_clues=(
                    Clue(
                        id="missing-clue-usb",
                        title="USB Drive",
                        detail="Holds an encrypted file labelled 'Operation-F'.",
                        category=ClueCategory.DOCUMENT,
                    ),
                ),
                suspect_updates=roster,
                status=CaseStatus.investigation(),
            ),
            ScriptBeat(
                response=(
                    "Decrypting the USB exposes documents about a bribery ring at city hall. "
                    "Ayse's last message says 'Find me at the terminal if needed'."
                ),
                new_clues=(
                    Clue(
                        id="missing-clue-last-message",
                        title="Last Message",
                        detail="A request to meet at the terminal.",
                        category=ClueCategory.DOCUMENT,
                    ),
                ),
                suspect_updates=roster,
            ),
            ScriptBeat(
                response=(
                    "You catch Melis Akin at the terminal. She was meant to meet Ayse, who never came. "
                    "Cameras show Ayse being forced into a minibus."
                ),
                new_clues=(
                    Clue(
                        id="missing-clue-terminal-camera",
                        title="Terminal Camera",
                        detail="Ayse is forced into a minibus.",
                        category=ClueCategory.PHYSICAL_EVIDENCE,
                    ),
                ),
                suspect_updates=roster,
            ),
            ScriptBeat(
                response=(
                    "The minibus belongs to the municipal garage. Inside you find Ayse and the documents, "
                    "both safe. The bribery ring is exposed."
                ),
                suspect_updates=roster,
                status=CaseStatus.solved(),
            ),
        ),
    )


def _heist() -> CaseScript:
    baran = SuspectProfile(
        id="heist-suspect-baran",
        name="Baran Gunes",
        occupation="Former vault designer",
        motive="Revenge for his bankrupt company",
        alibi="Claims he was abroad that night",
        trust=TrustLevel.SKEPTICAL,
    )
    roster = (baran,)

    return CaseScript(
        title="The Shadow Vault",
        synopsis="Three layers of security were broken. Was there help from inside?",
        suspects=roster,
        beats=(
            ScriptBeat(
                response=(
                    "No sign of forced entry. The alarm was disabled and only the opening code was used. "
                    "Someone sprayed 'The shadows collect their debts' on the wall."
                ),
                new_clues=(
                    Clue(
                        id="heist-clue-graffiti",
                        title="Graffiti Message",
                        detail="'The shadows collect their debts'",
                        category=ClueCategory.DOCUMENT,
                    ),
                ),
                suspect_updates=roster,
                status=CaseStatus.investigation(),
            ),
            ScriptBeat(
                response=(
                    "One of Baran's former students leaked the vault's opening protocol on a forum. "
                    "Guard Nurten says Baran was asking about the vault that evening."
                ),
                suspect_updates=roster,
            ),
            ScriptBeat(
                response=(
                    "Nurten admits she saw a second key belonging to Baran. The backup was never changed, "
                    "and the deputy manager had been emailing the codes."
                ),
                new_clues=(
                    Clue(
                        id="heist-clue-email-chain",
                        title="Email Chain",
                        detail="The codes were sent in plain-text email.",
                        category=ClueCategory.DOCUMENT,
                    ),
                ),
                suspect_updates=roster,
            ),
            ScriptBeat(
                response=(
                    "Baran moved the stolen jewels into a multi-sig vault. His partners were the head of "
                    "security and the finance director. You arrest all three."
                ),
                suspect_updates=roster,
                status=CaseStatus.solved(),
            ),
        ),
    )


def build_default_catalog() -> Dict[CaseType, CaseScript]:
    return {
        CaseType.HOMICIDE: _homicide(),
        CaseType.MISSING_PERSON: _missing_person(),
        CaseType.HEIST: _heist(),
    }


DEFAULT_CATALOG: Mapping[CaseType, CaseScript] = build_default_catalog()


def get_script(case_type: CaseType, catalog: Optional[Mapping[CaseType, CaseScript]] = None) -> Optional[CaseScript]:
    return (catalog if catalog is not None else DEFAULT_CATALOG).get(case_type)
